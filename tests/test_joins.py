"""
Tests for the pure repack join helpers (repackhub/accessors/joins.py).
No store involved.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from repackhub.accessors.joins import (
    build_link_rows,
    flatten_repack_join,
    parse_repack_join,
)
from repackhub.errors import StoreError

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def _promo(promo_id: str) -> dict:
    return {
        "promo_id": promo_id,
        "title": f"Promo {promo_id}",
        "qty": 1,
        "free": None,
        "price": "2.00",
        "inserted_at": NOW,
        "user_id": "U1",
    }


def _repack_row(links: list[dict]) -> dict:
    return {
        "repacks_id": "R1",
        "title": "Sealed Chase",
        "date": "2026-10-01",
        "quantity": 10,
        "price": "150.00",
        "status": "available",
        "inserted_at": NOW,
        "user_id": "U1",
        "repack_promo": links,
    }


def _link(promo: dict | None) -> dict:
    return {"repack_id": "R1", "promo_id": promo["promo_id"] if promo else "gone", "promo": promo}


class TestParseAndFlatten:
    def test_parse_builds_intermediate_shape(self) -> None:
        result = parse_repack_join(_repack_row([_link(_promo("P1")), _link(None)]))

        assert result.repack.repacks_id == "R1"
        assert result.repack.date == date(2026, 10, 1)
        assert [row.promo.promo_id if row.promo else None for row in result.join_rows] == ["P1", None]

    def test_flatten_keeps_repack_fields(self) -> None:
        view = flatten_repack_join(parse_repack_join(_repack_row([_link(_promo("P1"))])))

        assert view.repacks_id == "R1"
        assert view.price == Decimal("150.00")
        assert [p.promo_id for p in view.associated_promos] == ["P1"]

    def test_flatten_drops_unresolved_and_duplicate_promos(self) -> None:
        row = _repack_row(
            [_link(_promo("P1")), _link(None), _link(_promo("P2")), _link(_promo("P1"))]
        )

        view = flatten_repack_join(parse_repack_join(row))

        assert [p.promo_id for p in view.associated_promos] == ["P1", "P2"]

    def test_no_links(self) -> None:
        row = _repack_row([])
        row.pop("repack_promo")

        view = flatten_repack_join(parse_repack_join(row))

        assert view.associated_promos == []

    def test_malformed_row_is_a_store_error(self) -> None:
        row = _repack_row([])
        del row["title"]

        with pytest.raises(StoreError, match="Malformed repack join row"):
            parse_repack_join(row)


class TestBuildLinkRows:
    def test_dedupes_in_first_seen_order(self) -> None:
        rows = build_link_rows("R1", ["P2", "P1", "P2"], "U1")

        assert rows == [
            {"repack_id": "R1", "promo_id": "P2", "user_id": "U1"},
            {"repack_id": "R1", "promo_id": "P1", "user_id": "U1"},
        ]

    def test_empty(self) -> None:
        assert build_link_rows("R1", [], "U1") == []

"""
Tests for the Repacks collection and repack <-> promo links
(repackhub/accessors/repacks.py) against a real SQL store.
"""

from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from repackhub.accessors.promos import PromosCollection
from repackhub.accessors.repacks import RepacksCollection
from repackhub.errors import ErrorKind, StoreError
from repackhub.identity import Identity, IdentityProvider
from repackhub.store.base import Filter

SEALED_CHASE = {
    "title": "Sealed Chase",
    "date": "2026-10-01",
    "quantity": 10,
    "price": "150.00",
    "status": "available",
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user() -> IdentityProvider:
    return IdentityProvider(Identity.authenticated("U1"))


@pytest.fixture
async def repacks(sql_store, user) -> RepacksCollection:
    collection = RepacksCollection(sql_store, user)
    await collection.settle()
    return collection


@pytest.fixture
async def promo_ids(sql_store, user) -> tuple[str, str]:
    promos = PromosCollection(sql_store, user)
    await promos.settle()
    p1 = await promos.add({"title": "Booster Bonus", "qty": 1, "free": "1 sleeve", "price": "9.99"})
    p2 = await promos.add({"title": "Top Loader", "qty": 2, "price": "4.50"})
    promos.close()
    return p1.promo_id, p2.promo_id


async def _links(sql_store, repack_id: str) -> list[dict]:
    return await sql_store.select("repack_promo", [Filter("repack_id", repack_id)])


def _promo_row(promo_id: str, title: str, owner: str) -> dict:
    return {
        "promo_id": promo_id,
        "title": title,
        "qty": 1,
        "free": None,
        "price": Decimal("5.00"),
        "user_id": owner,
    }


def _repack_row(repacks_id: str, owner: str) -> dict:
    return {
        "repacks_id": repacks_id,
        "title": "Sealed Chase",
        "date": date(2026, 10, 1),
        "quantity": 10,
        "price": Decimal("150.00"),
        "status": "available",
        "user_id": owner,
    }


# ---------------------------------------------------------------------------
# Test: repack CRUD
# ---------------------------------------------------------------------------


class TestRepackCrud:
    @pytest.mark.asyncio
    async def test_add_repack(self, repacks) -> None:
        repack = await repacks.add(SEALED_CHASE)

        assert repack is not None
        assert repack.repacks_id
        assert repack.date == date(2026, 10, 1)
        assert repack.price == Decimal("150.00")
        assert repack.status == "available"
        assert repack.slot_count == 10
        assert repacks.items == [repack]

    @pytest.mark.asyncio
    async def test_status_defaults_to_draft(self, repacks) -> None:
        payload = {k: v for k, v in SEALED_CHASE.items() if k != "status"}
        repack = await repacks.add(payload)
        assert repack.status == "draft"

    @pytest.mark.asyncio
    async def test_update_status(self, repacks) -> None:
        repack = await repacks.add(SEALED_CHASE)

        updated = await repacks.update(repack.repacks_id, {"status": " SOLD "})

        assert updated.status == "sold"


# ---------------------------------------------------------------------------
# Test: links
# ---------------------------------------------------------------------------


class TestRepackPromoLinks:
    @pytest.mark.asyncio
    async def test_link_then_unlink(self, repacks, promo_ids) -> None:
        """Link P1 and P2, read them back, unlink P1, and only P2 remains."""
        p1, p2 = promo_ids
        r1 = await repacks.add(SEALED_CHASE)

        assert await repacks.add_promos_to_repack(r1.repacks_id, [p1, p2]) is True
        view = await repacks.fetch_repack_with_promos(r1.repacks_id)

        assert view is not None
        assert view.repacks_id == r1.repacks_id
        assert view.title == "Sealed Chase"
        assert {p.promo_id for p in view.associated_promos} == {p1, p2}
        assert repacks.selected == view

        assert await repacks.remove_promo_from_repack(r1.repacks_id, p1) is True
        view = await repacks.fetch_repack_with_promos(r1.repacks_id)

        assert [p.promo_id for p in view.associated_promos] == [p2]

    @pytest.mark.asyncio
    async def test_link_refreshes_selected(self, repacks, promo_ids) -> None:
        p1, _ = promo_ids
        r1 = await repacks.add(SEALED_CHASE)

        await repacks.add_promos_to_repack(r1.repacks_id, [p1])

        assert repacks.selected is not None
        assert [p.promo_id for p in repacks.selected.associated_promos] == [p1]

    @pytest.mark.asyncio
    async def test_relinking_is_idempotent(self, repacks, promo_ids, sql_store) -> None:
        p1, p2 = promo_ids
        r1 = await repacks.add(SEALED_CHASE)

        await repacks.add_promos_to_repack(r1.repacks_id, [p1, p2])
        assert await repacks.add_promos_to_repack(r1.repacks_id, [p1, p1, p2]) is True

        links = await _links(sql_store, r1.repacks_id)
        assert sorted(link["promo_id"] for link in links) == sorted([p1, p2])
        assert all(link["user_id"] == "U1" for link in links)
        assert len(repacks.selected.associated_promos) == 2

    @pytest.mark.asyncio
    async def test_empty_promo_set_is_a_no_op(self, repacks, sql_store) -> None:
        r1 = await repacks.add(SEALED_CHASE)
        sql_store.upsert = AsyncMock(wraps=sql_store.upsert)

        assert await repacks.add_promos_to_repack(r1.repacks_id, []) is True

        sql_store.upsert.assert_not_awaited()
        assert repacks.error is None

    @pytest.mark.asyncio
    async def test_unlinking_missing_pair_is_not_an_error(self, repacks, promo_ids) -> None:
        p1, _ = promo_ids
        r1 = await repacks.add(SEALED_CHASE)

        assert await repacks.remove_promo_from_repack(r1.repacks_id, p1) is True
        assert repacks.error is None
        assert repacks.selected.associated_promos == []

    @pytest.mark.asyncio
    async def test_link_failure_returns_false(self, repacks, promo_ids, sql_store) -> None:
        p1, _ = promo_ids
        r1 = await repacks.add(SEALED_CHASE)
        sql_store.upsert = AsyncMock(
            side_effect=StoreError('new row violates row-level security policy for table "repack_promo"')
        )

        assert await repacks.add_promos_to_repack(r1.repacks_id, [p1]) is False
        assert repacks.error_kind == ErrorKind.REMOTE
        assert repacks.loading is False

    @pytest.mark.asyncio
    async def test_other_owners_promo_cannot_be_linked(self, repacks, sql_store) -> None:
        """U1 cannot attach a promo owned by U2, and nothing is written."""
        await sql_store.insert("promo", [_promo_row("u2-promo", "U2 secret", "U2")])
        r1 = await repacks.add(SEALED_CHASE)

        assert await repacks.add_promos_to_repack(r1.repacks_id, ["u2-promo"]) is False

        assert repacks.error == "Promo u2-promo was not found."
        assert repacks.error_kind == ErrorKind.NOT_FOUND
        assert await _links(sql_store, r1.repacks_id) == []

    @pytest.mark.asyncio
    async def test_other_owners_repack_cannot_be_linked(self, repacks, promo_ids, sql_store) -> None:
        p1, _ = promo_ids
        await sql_store.insert("repacks", [_repack_row("u2-repack", "U2")])

        assert await repacks.add_promos_to_repack("u2-repack", [p1]) is False

        assert repacks.error == "Repack u2-repack was not found."
        assert await _links(sql_store, "u2-repack") == []

    @pytest.mark.asyncio
    async def test_link_signed_out(self, sql_store, identity) -> None:
        repacks = RepacksCollection(sql_store, identity)

        assert await repacks.add_promos_to_repack("r1", ["p1"]) is False
        assert repacks.error == "Not authenticated. Please log in to link promos to a repack."


# ---------------------------------------------------------------------------
# Test: fetch_repack_with_promos
# ---------------------------------------------------------------------------


class TestFetchRepackWithPromos:
    @pytest.mark.asyncio
    async def test_not_found(self, repacks) -> None:
        result = await repacks.fetch_repack_with_promos("missing")

        assert result is None
        assert repacks.error == "Repack missing was not found."
        assert repacks.error_kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_other_owner_sees_not_found(self, repacks, sql_store) -> None:
        r1 = await repacks.add(SEALED_CHASE)

        other = RepacksCollection(sql_store, IdentityProvider(Identity.authenticated("U2")))
        await other.settle()

        assert await other.fetch_repack_with_promos(r1.repacks_id) is None
        assert other.error_kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_dangling_link_is_dropped(self, repacks, sql_store) -> None:
        r1 = await repacks.add(SEALED_CHASE)
        await sql_store.insert(
            "repack_promo",
            [{"repack_id": r1.repacks_id, "promo_id": "deleted-promo", "user_id": "U1"}],
        )

        view = await repacks.fetch_repack_with_promos(r1.repacks_id)

        assert view is not None
        assert view.associated_promos == []

    @pytest.mark.asyncio
    async def test_view_hides_other_owners_rows(self, repacks, promo_ids, sql_store) -> None:
        """Links and promos that belong to another owner never show up."""
        p1, p2 = promo_ids
        r1 = await repacks.add(SEALED_CHASE)
        await sql_store.insert("promo", [_promo_row("u2-promo", "U2 secret", "U2")])
        await sql_store.insert(
            "repack_promo",
            [
                {"repack_id": r1.repacks_id, "promo_id": p1, "user_id": "U1"},
                {"repack_id": r1.repacks_id, "promo_id": "u2-promo", "user_id": "U1"},
                {"repack_id": r1.repacks_id, "promo_id": p2, "user_id": "U2"},
            ],
        )

        view = await repacks.fetch_repack_with_promos(r1.repacks_id)

        assert view is not None
        assert [p.promo_id for p in view.associated_promos] == [p1]

    @pytest.mark.asyncio
    async def test_sign_out_clears_selected(self, repacks, user) -> None:
        r1 = await repacks.add(SEALED_CHASE)
        await repacks.fetch_repack_with_promos(r1.repacks_id)
        assert repacks.selected is not None

        user.sign_out()

        assert repacks.selected is None
        assert repacks.items == []

    @pytest.mark.asyncio
    async def test_removing_selected_repack_clears_it(self, repacks) -> None:
        r1 = await repacks.add(SEALED_CHASE)
        await repacks.fetch_repack_with_promos(r1.repacks_id)

        await repacks.remove(r1.repacks_id)

        assert repacks.selected is None
        assert repacks.items == []


# ---------------------------------------------------------------------------
# Test: loading while a link operation is in flight
# ---------------------------------------------------------------------------


class TestLinkLoading:
    @pytest.mark.parametrize("fails", [False, True], ids=["success", "failure"])
    @pytest.mark.parametrize("operation", ["link", "unlink"])
    @pytest.mark.asyncio
    async def test_loading_while_in_flight(self, repacks, promo_ids, sql_store, operation, fails) -> None:
        p1, _ = promo_ids
        r1 = await repacks.add(SEALED_CHASE)
        method = "upsert" if operation == "link" else "delete"
        inner = getattr(sql_store, method)
        reached = asyncio.Event()
        gate = asyncio.Event()

        async def held(*args, **kwargs):
            reached.set()
            await gate.wait()
            if fails:
                raise StoreError("connection reset")
            return await inner(*args, **kwargs)

        setattr(sql_store, method, AsyncMock(side_effect=held))
        if operation == "link":
            call = repacks.add_promos_to_repack(r1.repacks_id, [p1])
        else:
            call = repacks.remove_promo_from_repack(r1.repacks_id, p1)

        task = asyncio.create_task(call)
        await reached.wait()
        assert repacks.loading is True

        gate.set()
        assert await task is (not fails)
        assert repacks.loading is False
        if fails:
            assert repacks.error == "connection reset"
            assert repacks.error_kind == ErrorKind.REMOTE
        else:
            assert repacks.error is None
            assert repacks.selected is not None

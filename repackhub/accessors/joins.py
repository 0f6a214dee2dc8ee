"""
RepackHub — repack <-> promo join reshaping

The embedded read returns each repack with its repack_promo rows, and each of
those with its promo resolved. These helpers turn that nested row into the
explicit intermediate RepackJoinResult and flatten it into RepackWithPromos.
Nothing here touches a store.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from pydantic import ValidationError

from repackhub.errors import StoreError
from repackhub.schemas.promo import Promo
from repackhub.schemas.repack import Repack, RepackJoinResult, RepackJoinRow, RepackWithPromos
from repackhub.store.base import Embed, Filter, Row

JOIN_RELATION = "repack_promo"

# repacks -> repack_promo (many) -> promo (one)
REPACK_PROMO_EMBED = Embed(
    JOIN_RELATION,
    local_column="repacks_id",
    remote_column="repack_id",
    many=True,
    nested=(Embed("promo", local_column="promo_id", remote_column="promo_id", many=False),),
)


def repack_promo_embed(owner: str | None) -> Embed:
    """REPACK_PROMO_EMBED with both the links and their promos limited to owner."""
    if owner is None:
        return REPACK_PROMO_EMBED
    scope = (Filter("user_id", owner),)
    return replace(
        REPACK_PROMO_EMBED,
        filters=scope,
        nested=tuple(replace(child, filters=scope) for child in REPACK_PROMO_EMBED.nested),
    )


def parse_repack_join(row: Row) -> RepackJoinResult:
    """Validate one embedded repack row into a RepackJoinResult."""
    try:
        repack = Repack.model_validate(row)
        join_rows = [
            RepackJoinRow(promo=Promo.model_validate(link["promo"]) if link.get("promo") else None)
            for link in row.get(JOIN_RELATION) or []
        ]
    except ValidationError as exc:
        raise StoreError(f"Malformed repack join row: {exc.errors()[0]['msg']}") from exc
    return RepackJoinResult(repack=repack, join_rows=join_rows)


def flatten_repack_join(result: RepackJoinResult) -> RepackWithPromos:
    """
    Collapse the join rows into associated_promos.

    Links whose promo did not resolve are dropped, and a promo linked more
    than once appears once, at its first position.
    """
    seen: set[str] = set()
    promos: list[Promo] = []
    for link in result.join_rows:
        if link.promo is None or link.promo.promo_id in seen:
            continue
        seen.add(link.promo.promo_id)
        promos.append(link.promo)
    return RepackWithPromos(**result.repack.model_dump(), associated_promos=promos)


def build_link_rows(repack_id: str, promo_ids: Iterable[str], owner: str) -> list[dict[str, Any]]:
    """One join row per distinct promo id, in first-seen order."""
    unique_ids = list(dict.fromkeys(promo_ids))
    return [
        {"repack_id": repack_id, "promo_id": promo_id, "user_id": owner}
        for promo_id in unique_ids
    ]

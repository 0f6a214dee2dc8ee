"""
RepackHub — Repacks collection and repack <-> promo links

RepackPromoLinks manages the repack_promo join relation. Linking is an upsert
on (repack_id, promo_id) so a pair is stored at most once; after every link
or unlink the repack-with-promos view is re-read into `selected`. Only the
owner's repack and promos can be linked, and the view embeds only the
owner's links and promos.

Link operations share the repacks collection's loading/error state.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from repackhub.accessors.crud import CollectionAccessor
from repackhub.accessors.joins import (
    JOIN_RELATION,
    build_link_rows,
    flatten_repack_join,
    parse_repack_join,
    repack_promo_embed,
)
from repackhub.accessors.scoped import IdentityScopedCollection
from repackhub.errors import NotFoundError
from repackhub.identity import IdentityProvider
from repackhub.models.promo import Promo as PromoTable
from repackhub.models.repack import Repack as RepackTable
from repackhub.schemas.repack import Repack, RepackCreate, RepackUpdate, RepackWithPromos
from repackhub.store.base import Filter, RemoteStore

logger = structlog.get_logger(__name__)


class RepackPromoLinks:
    def __init__(self, repacks: CollectionAccessor[Repack]):
        self._repacks = repacks
        self.selected: RepackWithPromos | None = None

    async def _load(self, generation: int, repack_id: str) -> RepackWithPromos:
        accessor = self._repacks
        rows = await accessor.store.select(
            accessor.relation,
            accessor.scope([Filter(accessor.id_field, repack_id)]),
            embed=[repack_promo_embed(accessor.owner)],
            limit=1,
        )
        if not rows:
            raise NotFoundError(f"Repack {repack_id} was not found.")
        view = flatten_repack_join(parse_repack_join(rows[0]))
        if accessor.is_current(generation):
            self.selected = view
        return view

    async def _require_owned(self, owner: str, repack_id: str, promo_ids: Iterable[str]) -> None:
        """Raise NotFoundError unless the repack and every promo belong to owner."""
        if await self._repacks.select_row(repack_id) is None:
            raise NotFoundError(f"Repack {repack_id} was not found.")
        for promo_id in promo_ids:
            rows = await self._repacks.store.select(
                PromoTable.__tablename__,
                [Filter("promo_id", promo_id), Filter("user_id", owner)],
                limit=1,
            )
            if not rows:
                raise NotFoundError(f"Promo {promo_id} was not found.")

    async def fetch_repack_with_promos(self, repack_id: str) -> RepackWithPromos | None:
        accessor = self._repacks

        async def work(generation: int) -> RepackWithPromos:
            accessor.require_owner("view repack details")
            return await self._load(generation, repack_id)

        return await accessor.run("fetch_repack_with_promos", work)

    async def add_promos_to_repack(self, repack_id: str, promo_ids: Iterable[str]) -> bool:
        """Link every promo id to the repack. An empty id set does nothing."""
        accessor = self._repacks
        promo_ids = list(promo_ids)

        async def work(generation: int) -> bool:
            owner = accessor.require_owner("link promos to a repack")
            rows = build_link_rows(repack_id, promo_ids, owner)
            if not rows:
                return True
            await self._require_owned(owner, repack_id, [row["promo_id"] for row in rows])
            await accessor.store.upsert(JOIN_RELATION, rows, conflict_target=("repack_id", "promo_id"))
            logger.info("promos_linked", repack_id=repack_id, count=len(rows))
            await self._load(generation, repack_id)
            return True

        return await accessor.run("link_promos", work) is not None

    async def remove_promo_from_repack(self, repack_id: str, promo_id: str) -> bool:
        """Unlink one promo. Unlinking a pair that is not linked is not an error."""
        accessor = self._repacks

        async def work(generation: int) -> bool:
            owner = accessor.require_owner("unlink a promo from a repack")
            await accessor.store.delete(
                JOIN_RELATION,
                [
                    Filter("repack_id", repack_id),
                    Filter("promo_id", promo_id),
                    Filter("user_id", owner),
                ],
            )
            logger.info("promo_unlinked", repack_id=repack_id, promo_id=promo_id)
            await self._load(generation, repack_id)
            return True

        return await accessor.run("unlink_promo", work) is not None


class RepacksCollection(IdentityScopedCollection[Repack]):
    def __init__(self, store: RemoteStore, identity: IdentityProvider):
        accessor = CollectionAccessor(
            store,
            RepackTable.__tablename__,
            Repack,
            id_field="repacks_id",
            label="repack",
            order_by="inserted_at",
            ascending=False,
            owner_field="user_id",
            create_type=RepackCreate,
            update_type=RepackUpdate,
            prepend_new=True,
        )
        # Must exist before the identity listener fires in super().__init__.
        self.links = RepackPromoLinks(accessor)
        super().__init__(accessor, identity)

    def _on_reset(self) -> None:
        self.links.selected = None

    @property
    def selected(self) -> RepackWithPromos | None:
        return self.links.selected

    async def add(self, payload: RepackCreate | Mapping[str, Any]) -> Repack | None:
        return await self.accessor.add(payload)

    async def update(self, repacks_id: str, fields: RepackUpdate | Mapping[str, Any]) -> Repack | None:
        return await self.accessor.update(repacks_id, fields)

    async def remove(self, repacks_id: str) -> None:
        await self.accessor.remove(repacks_id)
        selected = self.links.selected
        if self.accessor.error is None and selected is not None and selected.repacks_id == repacks_id:
            self.links.selected = None

    async def fetch_repack_with_promos(self, repacks_id: str) -> RepackWithPromos | None:
        return await self.links.fetch_repack_with_promos(repacks_id)

    async def add_promos_to_repack(self, repacks_id: str, promo_ids: Iterable[str]) -> bool:
        return await self.links.add_promos_to_repack(repacks_id, promo_ids)

    async def remove_promo_from_repack(self, repacks_id: str, promo_id: str) -> bool:
        return await self.links.remove_promo_from_repack(repacks_id, promo_id)

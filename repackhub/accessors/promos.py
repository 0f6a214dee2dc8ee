"""RepackHub — Promos collection."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from repackhub.accessors.crud import CollectionAccessor
from repackhub.accessors.scoped import IdentityScopedCollection
from repackhub.identity import IdentityProvider
from repackhub.models.promo import Promo as PromoTable
from repackhub.schemas.promo import Promo, PromoCreate, PromoUpdate
from repackhub.store.base import RemoteStore


class PromosCollection(IdentityScopedCollection[Promo]):
    def __init__(self, store: RemoteStore, identity: IdentityProvider):
        accessor = CollectionAccessor(
            store,
            PromoTable.__tablename__,
            Promo,
            id_field="promo_id",
            label="promo",
            order_by="inserted_at",
            ascending=False,
            owner_field="user_id",
            create_type=PromoCreate,
            update_type=PromoUpdate,
            prepend_new=True,
        )
        super().__init__(accessor, identity)

    async def add(self, payload: PromoCreate | Mapping[str, Any]) -> Promo | None:
        return await self.accessor.add(payload)

    async def update(self, promo_id: str, fields: PromoUpdate | Mapping[str, Any]) -> Promo | None:
        return await self.accessor.update(promo_id, fields)

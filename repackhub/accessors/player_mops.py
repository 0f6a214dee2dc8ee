"""
RepackHub — Player modes of payment

A collection over player_mop restricted to one player through a static
filter. Ids are assigned by the store. Built with player_id=None it holds
nothing and every operation is a no-op.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from repackhub.accessors.crud import CollectionAccessor
from repackhub.accessors.state import LoadState
from repackhub.errors import ErrorKind
from repackhub.models.player import PlayerMop as PlayerMopTable
from repackhub.schemas.player import PlayerMop, PlayerMopCreate, PlayerMopUpdate
from repackhub.store.base import Filter, RemoteStore


class PlayerMopsCollection:
    def __init__(self, store: RemoteStore, player_id: str | None):
        self.player_id = player_id
        self.accessor: CollectionAccessor[PlayerMop] = CollectionAccessor(
            store,
            PlayerMopTable.__tablename__,
            PlayerMop,
            id_field="id",
            label="payment method",
            order_by="mop",
            ascending=True,
            static_filter=Filter("player_id", player_id) if player_id is not None else None,
            id_factory=None,
            create_type=PlayerMopCreate,
            update_type=PlayerMopUpdate,
        )

    @property
    def active(self) -> bool:
        return self.player_id is not None

    @property
    def items(self) -> list[PlayerMop]:
        return self.accessor.items

    @property
    def loading(self) -> bool:
        return self.accessor.loading

    @property
    def error(self) -> str | None:
        return self.accessor.error

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.accessor.error_kind

    @property
    def status(self) -> LoadState:
        return self.accessor.status

    def clear_error(self) -> None:
        self.accessor.clear_error()

    async def fetch(self) -> None:
        if self.active:
            await self.accessor.fetch()

    refetch = fetch

    async def add(self, payload: PlayerMopCreate | Mapping[str, Any]) -> PlayerMop | None:
        if not self.active:
            return None
        return await self.accessor.add(payload)

    async def update(self, mop_id: int, fields: PlayerMopUpdate | Mapping[str, Any]) -> PlayerMop | None:
        if not self.active:
            return None
        return await self.accessor.update(mop_id, fields)

    async def remove(self, mop_id: int) -> None:
        if self.active:
            await self.accessor.remove(mop_id)

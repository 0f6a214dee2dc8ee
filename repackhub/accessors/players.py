"""
RepackHub — Players collection

Player names are unique per owner (checked against the cached list).
Profile pictures live in blob storage at "{owner}/{player_id}.{ext}"; the
player row only stores the public URL.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from repackhub.accessors.crud import CollectionAccessor
from repackhub.accessors.scoped import IdentityScopedCollection
from repackhub.errors import NotFoundError, RepackHubError, StoreError
from repackhub.identity import IdentityProvider
from repackhub.models.player import Player as PlayerTable
from repackhub.schemas.player import Player, PlayerCreate, PlayerUpdate, ProfilePicture
from repackhub.store.base import RemoteStore
from repackhub.store.blob import BlobStorage

logger = structlog.get_logger(__name__)


class PlayersCollection(IdentityScopedCollection[Player]):
    def __init__(
        self,
        store: RemoteStore,
        identity: IdentityProvider,
        blob_storage: BlobStorage | None = None,
    ):
        self._blobs = blob_storage
        accessor = CollectionAccessor(
            store,
            PlayerTable.__tablename__,
            Player,
            id_field="player_id",
            label="player",
            order_by="inserted_at",
            ascending=False,
            unique_field="name",
            owner_field="user_id",
            create_type=PlayerCreate,
            update_type=PlayerUpdate,
            prepend_new=True,
        )
        super().__init__(accessor, identity)

    async def add(self, payload: PlayerCreate | Mapping[str, Any]) -> Player | None:
        return await self.accessor.add(payload)

    async def update(
        self,
        player_id: str,
        fields: PlayerUpdate | Mapping[str, Any] | None = None,
        *,
        profile_pic: ProfilePicture | None = None,
        clear_profile_pic: bool = False,
    ) -> Player | None:
        """
        Partially update a player.

        A supplied profile_pic is uploaded once the owned row is confirmed to
        exist, and its public URL stored; clear_profile_pic stores None.
        Neither touches profile_pic_url otherwise.
        """
        accessor = self.accessor

        async def work(generation: int) -> Player:
            owner = accessor.require_owner("update a player")
            values = accessor.prepare_update(fields if fields is not None else {})
            accessor.check_unique(values, exclude_id=player_id)

            if profile_pic is not None:
                if await accessor.select_row(player_id) is None:
                    raise NotFoundError(f"No player with player_id {player_id} was found.")
                values["profile_pic_url"] = await self._upload_picture(owner, player_id, profile_pic)
            elif clear_profile_pic:
                values["profile_pic_url"] = None

            return await accessor.apply_update(generation, player_id, values)

        return await accessor.run("update", work)

    async def remove(self, player_id: str) -> None:
        """Delete the player row, then best-effort delete its profile picture."""
        accessor = self.accessor

        async def work(generation: int) -> None:
            accessor.require_owner("delete a player")
            row = await accessor.select_row(player_id)
            await accessor.apply_delete(generation, player_id)

            url = row.get("profile_pic_url") if row else None
            if url:
                await self._remove_picture(url)

        await accessor.run("delete", work)

    # -----------------------------------------------------------------------
    # Blob storage
    # -----------------------------------------------------------------------

    async def _upload_picture(self, owner: str | None, player_id: str, picture: ProfilePicture) -> str:
        if self._blobs is None:
            raise RepackHubError("Blob storage is not configured; cannot store profile pictures.")
        path = f"{owner}/{player_id}.{picture.extension}"
        url = await self._blobs.upload(path, picture.content, picture.content_type)
        logger.info("profile_pic_uploaded", player_id=player_id, path=path)
        return url

    async def _remove_picture(self, url: str) -> None:
        if self._blobs is None:
            return
        path = self._blobs.path_from_url(url)
        if path is None:
            logger.warning("profile_pic_path_unresolved", url=url)
            return
        try:
            await self._blobs.remove(path)
        except StoreError as e:
            # The player row is already gone; an orphaned image is tolerable.
            logger.warning("profile_pic_remove_failed", path=path, error=str(e))

"""
Tests for the Players collection (repackhub/accessors/players.py).

Covers:
- Name uniqueness per owner (no remote insert on a duplicate)
- New players placed first
- Profile picture upload / clear on update
- Best-effort picture removal when a player is deleted
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from repackhub.accessors.players import PlayersCollection
from repackhub.errors import ErrorKind, StoreError
from repackhub.identity import Identity, IdentityProvider
from repackhub.schemas.player import PlayerUpdate, ProfilePicture

PUBLIC_PREFIX = "https://demo.supabase.co/storage/v1/object/public/profile-pics/"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def blob_storage() -> MagicMock:
    """BlobStorage double: async upload/remove, sync path_from_url."""
    storage = MagicMock()
    storage.upload = AsyncMock(side_effect=lambda path, content, content_type=None: PUBLIC_PREFIX + path)
    storage.remove = AsyncMock()
    storage.path_from_url.side_effect = lambda url: url.removeprefix(PUBLIC_PREFIX)
    return storage


@pytest.fixture
async def players(sql_store, blob_storage) -> PlayersCollection:
    collection = PlayersCollection(sql_store, IdentityProvider(Identity.authenticated("U1")), blob_storage)
    await collection.settle()
    return collection


# ---------------------------------------------------------------------------
# Test: add
# ---------------------------------------------------------------------------


class TestAddPlayer:
    @pytest.mark.asyncio
    async def test_duplicate_name_is_rejected_without_insert(self, players, sql_store) -> None:
        """Adding "Alex" twice for the same owner fails before reaching the store."""
        await players.add({"name": "Alex"})
        sql_store.insert = AsyncMock(wraps=sql_store.insert)

        result = await players.add({"name": "Alex", "full_name": "Alex Cruz"})

        assert result is None
        assert "name" in players.error
        assert players.error_kind == ErrorKind.VALIDATION
        sql_store.insert.assert_not_awaited()
        assert [p.name for p in players.items] == ["Alex"]

    @pytest.mark.asyncio
    async def test_same_name_for_another_owner_is_fine(self, sql_store, players) -> None:
        await players.add({"name": "Alex"})

        other = PlayersCollection(sql_store, IdentityProvider(Identity.authenticated("U2")))
        await other.settle()
        created = await other.add({"name": "Alex"})

        assert created is not None
        assert created.user_id == "U2"

    @pytest.mark.asyncio
    async def test_new_players_are_listed_first(self, players) -> None:
        await players.add({"name": "Alex"})
        await players.add({"name": "Sam"})

        assert [p.name for p in players.items] == ["Sam", "Alex"]

        await players.refetch()
        assert [p.name for p in players.items] == ["Sam", "Alex"]


# ---------------------------------------------------------------------------
# Test: profile pictures
# ---------------------------------------------------------------------------


class TestProfilePicture:
    @pytest.mark.asyncio
    async def test_update_uploads_picture_and_stores_url(self, players, blob_storage) -> None:
        alex = await players.add({"name": "Alex"})

        updated = await players.update(
            alex.player_id,
            PlayerUpdate(contact_number="0917"),
            profile_pic=ProfilePicture("selfie.PNG", b"\x89PNG", "image/png"),
        )

        path = f"U1/{alex.player_id}.png"
        blob_storage.upload.assert_awaited_once_with(path, b"\x89PNG", "image/png")
        assert updated is not None
        assert updated.profile_pic_url == PUBLIC_PREFIX + path
        assert updated.contact_number == "0917"
        assert players.items[0].profile_pic_url == PUBLIC_PREFIX + path

    @pytest.mark.asyncio
    async def test_update_without_picture_leaves_url_alone(self, players, blob_storage) -> None:
        alex = await players.add({"name": "Alex"})
        await players.update(alex.player_id, profile_pic=ProfilePicture("a.jpg", b"x"))

        updated = await players.update(alex.player_id, {"address": "Pasig"})

        assert updated.profile_pic_url == PUBLIC_PREFIX + f"U1/{alex.player_id}.jpg"
        assert blob_storage.upload.await_count == 1

    @pytest.mark.asyncio
    async def test_clear_profile_pic(self, players) -> None:
        alex = await players.add({"name": "Alex"})
        await players.update(alex.player_id, profile_pic=ProfilePicture("a.jpg", b"x"))

        updated = await players.update(alex.player_id, clear_profile_pic=True)

        assert updated is not None
        assert updated.profile_pic_url is None

    def test_extension_falls_back_to_bin(self) -> None:
        assert ProfilePicture("avatar", b"x").extension == "bin"
        assert ProfilePicture("me.JPEG", b"x").extension == "jpeg"

    @pytest.mark.asyncio
    async def test_upload_failure_leaves_row_untouched(self, players, blob_storage, sql_store) -> None:
        alex = await players.add({"name": "Alex"})
        blob_storage.upload.side_effect = StoreError("The object exceeded the maximum allowed size")
        sql_store.update = AsyncMock(wraps=sql_store.update)

        result = await players.update(alex.player_id, profile_pic=ProfilePicture("a.png", b"x"))

        assert result is None
        assert players.error == "The object exceeded the maximum allowed size"
        assert players.error_kind == ErrorKind.REMOTE
        sql_store.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_picture_without_blob_storage(self, sql_store) -> None:
        players = PlayersCollection(sql_store, IdentityProvider(Identity.authenticated("U1")))
        await players.settle()
        alex = await players.add({"name": "Alex"})

        result = await players.update(alex.player_id, profile_pic=ProfilePicture("a.png", b"x"))

        assert result is None
        assert players.error == "Blob storage is not configured; cannot store profile pictures."

    @pytest.mark.asyncio
    async def test_unknown_player_uploads_nothing(self, players, blob_storage) -> None:
        result = await players.update("missing", profile_pic=ProfilePicture("a.png", b"x"))

        assert result is None
        assert players.error_kind == ErrorKind.NOT_FOUND
        blob_storage.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_owners_player_uploads_nothing(self, players, blob_storage, sql_store) -> None:
        other = PlayersCollection(sql_store, IdentityProvider(Identity.authenticated("U2")), blob_storage)
        await other.settle()
        sam = await other.add({"name": "Sam"})

        result = await players.update(sam.player_id, profile_pic=ProfilePicture("a.png", b"x"))

        assert result is None
        assert players.error_kind == ErrorKind.NOT_FOUND
        blob_storage.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_profile_pic_url_is_not_a_plain_field(self, players) -> None:
        alex = await players.add({"name": "Alex"})

        result = await players.update(alex.player_id, {"profile_pic_url": "https://evil.example/x.png"})

        assert result is None
        assert players.error_kind == ErrorKind.VALIDATION


# ---------------------------------------------------------------------------
# Test: remove
# ---------------------------------------------------------------------------


class TestRemovePlayer:
    @pytest.mark.asyncio
    async def test_remove_deletes_row_and_picture(self, players, blob_storage) -> None:
        alex = await players.add({"name": "Alex"})
        await players.update(alex.player_id, profile_pic=ProfilePicture("a.png", b"x"))

        await players.remove(alex.player_id)

        assert players.items == []
        assert players.error is None
        blob_storage.remove.assert_awaited_once_with(f"U1/{alex.player_id}.png")

    @pytest.mark.asyncio
    async def test_remove_without_picture_skips_storage(self, players, blob_storage) -> None:
        alex = await players.add({"name": "Alex"})

        await players.remove(alex.player_id)

        assert players.items == []
        blob_storage.remove.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_storage_failure_is_not_an_error(self, players, blob_storage) -> None:
        alex = await players.add({"name": "Alex"})
        await players.update(alex.player_id, profile_pic=ProfilePicture("a.png", b"x"))
        blob_storage.remove.side_effect = StoreError("Object not found")

        await players.remove(alex.player_id)

        assert players.items == []
        assert players.error is None

    @pytest.mark.asyncio
    async def test_fetch_by_id(self, players) -> None:
        alex = await players.add({"name": "Alex"})

        found = await players.fetch_by_id(alex.player_id)

        assert found is not None
        assert found.name == "Alex"

"""
RepackHub — Blob storage for player profile pictures

Only the Players collection uses this, and only when a caller supplies image
bytes (or asks to clear the picture) alongside an update.
"""

from __future__ import annotations

from typing import Any, Protocol
from urllib.parse import quote, unquote, urlparse

import httpx
import structlog

from repackhub.config import settings
from repackhub.errors import StoreError
from repackhub.store.postgrest import error_from_response

logger = structlog.get_logger(__name__)


class BlobStorage(Protocol):
    async def upload(self, path: str, content: bytes, content_type: str | None = None) -> str:
        """Store content at path (overwriting) and return its public URL."""
        ...

    async def remove(self, path: str) -> None:
        ...

    def path_from_url(self, url: str) -> str | None:
        """Recover the object path from a public URL, or None if foreign."""
        ...


class SupabaseBlobStorage:
    """
    BlobStorage over the Supabase Storage REST API.

    Usage:
        async with SupabaseBlobStorage() as storage:
            url = await storage.upload("U1/p1.png", data, "image/png")
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        bucket: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
    ):
        self._base_url = (base_url or settings.SUPABASE_URL).rstrip("/")
        self._api_key = api_key or settings.SUPABASE_KEY
        self.bucket = bucket or settings.PROFILE_PIC_BUCKET
        self._access_token = access_token
        self._timeout = settings.HTTP_TIMEOUT_SECONDS if timeout is None else timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> SupabaseBlobStorage:
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/storage/v1",
            headers={
                "apikey": self._api_key,
                "Authorization": f"Bearer {self._access_token or self._api_key}",
            },
            timeout=self._timeout,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def public_url(self, path: str) -> str:
        return f"{self._base_url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    def path_from_url(self, url: str) -> str | None:
        marker = f"/object/public/{self.bucket}/"
        url_path = urlparse(url).path
        _, found, path = url_path.partition(marker)
        if not found or not path:
            return None
        return unquote(path)

    async def upload(self, path: str, content: bytes, content_type: str | None = None) -> str:
        assert self._client is not None, "Client not initialized. Use 'async with'."

        headers = {
            "x-upsert": "true",
            "cache-control": f"max-age={settings.PROFILE_PIC_CACHE_CONTROL}",
            "Content-Type": content_type or "application/octet-stream",
        }
        try:
            response = await self._client.post(
                f"/object/{self.bucket}/{quote(path)}", content=content, headers=headers
            )
        except httpx.RequestError as e:
            raise StoreError(f"Network error: {e}") from e
        if response.is_error:
            raise error_from_response(response)

        logger.info("blob_uploaded", bucket=self.bucket, path=path, size=len(content))
        return self.public_url(path)

    async def remove(self, path: str) -> None:
        assert self._client is not None, "Client not initialized. Use 'async with'."

        try:
            response = await self._client.request(
                "DELETE", f"/object/{self.bucket}", json={"prefixes": [path]}
            )
        except httpx.RequestError as e:
            raise StoreError(f"Network error: {e}") from e
        if response.is_error:
            raise error_from_response(response)

        logger.info("blob_removed", bucket=self.bucket, path=path)

"""
RepackHub — PostgREST / Supabase REST store client

Implements RemoteStore over the Supabase REST endpoint (/rest/v1). Row-level
security on the server is expected to mirror the owner filters the
collections send explicitly.

Reads are retried with exponential backoff on 429, 5xx and transport errors.
Writes are sent once: a retried insert could land twice.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Sequence

import httpx
import structlog
from pydantic_core import to_jsonable_python

from repackhub.config import settings
from repackhub.errors import StoreError
from repackhub.store.base import Embed, Filter, Order, Row

logger = structlog.get_logger(__name__)

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


# ---------------------------------------------------------------------------
# Query rendering
# ---------------------------------------------------------------------------


def render_filter_value(value: Any) -> str:
    """Render an equality filter in PostgREST operator syntax."""
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{to_jsonable_python(value)}"


def render_embed(embed: Embed) -> str:
    inner = ",".join(["*", *(render_embed(child) for child in embed.nested)])
    return f"{embed.relation}({inner})"


def render_embed_filters(embed: Embed, prefix: str = "") -> list[tuple[str, str]]:
    """Embedded-resource filters, e.g. ('repack_promo.promo.user_id', 'eq.U1')."""
    path = f"{prefix}{embed.relation}"
    params = [(f"{path}.{f.column}", render_filter_value(f.value)) for f in embed.filters]
    for child in embed.nested:
        params.extend(render_embed_filters(child, f"{path}."))
    return params


def render_select(embed: Sequence[Embed] = ()) -> str:
    """Build the select= parameter, e.g. '*,repack_promo(*,promo(*))'."""
    return ",".join(["*", *(render_embed(e) for e in embed)])


def render_params(
    filters: Sequence[Filter] = (),
    order: Order | None = None,
    select: str | None = None,
    limit: int | None = None,
) -> list[tuple[str, str]]:
    params: list[tuple[str, str]] = []
    if select is not None:
        params.append(("select", select))
    for f in filters:
        params.append((f.column, render_filter_value(f.value)))
    if order is not None:
        direction = "asc" if order.ascending else "desc"
        params.append(("order", f"{order.column}.{direction}"))
    if limit is not None:
        params.append(("limit", str(limit)))
    return params


def error_from_response(response: httpx.Response) -> StoreError:
    """Map a PostgREST error body ({message, code, details, hint}) to StoreError."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or f"HTTP {response.status_code}"
        return StoreError(str(message), code=body.get("code"), details=body.get("details"))

    text = response.text.strip()
    return StoreError(text or f"HTTP {response.status_code}", code=str(response.status_code))


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class PostgrestStore:
    """
    Async RemoteStore backed by Supabase's PostgREST API.

    Usage:
        async with PostgrestStore() as store:
            rows = await store.select("promo", [Filter("user_id", uid)])
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        access_token: str | None = None,
        max_retries: int | None = None,
        base_backoff: float | None = None,
        timeout: float | None = None,
    ):
        self._base_url = (base_url or settings.SUPABASE_URL).rstrip("/")
        self._api_key = api_key or settings.SUPABASE_KEY
        self._access_token = access_token
        self._max_retries = settings.HTTP_MAX_RETRIES if max_retries is None else max_retries
        self._base_backoff = (
            settings.HTTP_BASE_BACKOFF_SECONDS if base_backoff is None else base_backoff
        )
        self._timeout = settings.HTTP_TIMEOUT_SECONDS if timeout is None else timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> PostgrestStore:
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/rest/v1",
            headers={
                "apikey": self._api_key,
                "Authorization": f"Bearer {self._access_token or self._api_key}",
                "Accept": "application/json",
            },
            timeout=self._timeout,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        relation: str,
        *,
        params: list[tuple[str, str]] | None = None,
        payload: Any = None,
        prefer: str | None = None,
        retry: bool = False,
    ) -> Any:
        """
        Send one request. Retryable failures are retried only when `retry`.

        Raises:
            StoreError: on any non-2xx response or transport failure.
        """
        assert self._client is not None, "Client not initialized. Use 'async with'."

        headers = {"Prefer": prefer} if prefer else None
        body = to_jsonable_python(payload) if payload is not None else None
        attempts = self._max_retries + 1 if retry else 1
        last_error: StoreError | None = None

        for attempt in range(attempts):
            try:
                response = await self._client.request(
                    method, f"/{relation}", params=params, json=body, headers=headers
                )
            except httpx.RequestError as e:
                last_error = StoreError(f"Network error: {e}")
                logger.warning(
                    "postgrest_request_error",
                    relation=relation,
                    method=method,
                    error=str(e),
                    attempt=attempt + 1,
                )
            else:
                if not response.is_error:
                    if response.status_code == 204 or not response.content:
                        return None
                    return response.json()

                last_error = error_from_response(response)
                logger.warning(
                    "postgrest_http_error",
                    relation=relation,
                    method=method,
                    status_code=response.status_code,
                    code=last_error.code,
                    attempt=attempt + 1,
                )
                if response.status_code not in _RETRYABLE_STATUS:
                    raise last_error

            if attempt + 1 < attempts:
                await asyncio.sleep(self._base_backoff * (2 ** attempt))

        assert last_error is not None
        raise last_error

    # -----------------------------------------------------------------------
    # RemoteStore
    # -----------------------------------------------------------------------

    async def select(
        self,
        relation: str,
        filters: Sequence[Filter] = (),
        order: Order | None = None,
        embed: Sequence[Embed] = (),
        limit: int | None = None,
    ) -> list[Row]:
        params = render_params(filters, order, select=render_select(embed), limit=limit)
        for e in embed:
            params.extend(render_embed_filters(e))
        data = await self._request("GET", relation, params=params, retry=True)
        return list(data or [])

    async def insert(self, relation: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        data = await self._request(
            "POST",
            relation,
            params=[("select", "*")],
            payload=[dict(r) for r in rows],
            prefer="return=representation",
        )
        return list(data or [])

    async def update(
        self,
        relation: str,
        values: Mapping[str, Any],
        filters: Sequence[Filter],
    ) -> list[Row]:
        data = await self._request(
            "PATCH",
            relation,
            params=render_params(filters, select="*"),
            payload=dict(values),
            prefer="return=representation",
        )
        return list(data or [])

    async def delete(self, relation: str, filters: Sequence[Filter]) -> None:
        if not filters:
            raise StoreError(f"Refusing unfiltered delete on {relation}")
        await self._request(
            "DELETE", relation, params=render_params(filters), prefer="return=minimal"
        )

    async def upsert(
        self,
        relation: str,
        rows: Sequence[Mapping[str, Any]],
        conflict_target: Sequence[str],
    ) -> None:
        await self._request(
            "POST",
            relation,
            params=[("on_conflict", ",".join(conflict_target))],
            payload=[dict(r) for r in rows],
            prefer="resolution=merge-duplicates,return=minimal",
        )

"""
RepackHub — Identity-scoped collections

Gates a CollectionAccessor behind the IdentityProvider:

- signed out: list empty, not loading, no error, no remote calls;
- signed in (or switched identity): the list is cleared synchronously and a
  full fetch for the new owner is scheduled;
- signed out again: the list is cleared synchronously.

A fetch that was in flight for the previous identity is left to finish; the
accessor's generation check drops its result.
"""

from __future__ import annotations

import asyncio
from typing import Generic

import structlog

from repackhub.accessors.crud import CollectionAccessor, PayloadLike, RecordT
from repackhub.accessors.state import LoadState
from repackhub.errors import ErrorKind
from repackhub.identity import Identity, IdentityProvider

logger = structlog.get_logger(__name__)


class IdentityScopedCollection(Generic[RecordT]):
    def __init__(self, accessor: CollectionAccessor[RecordT], identity: IdentityProvider):
        self.accessor = accessor
        self._identity = identity
        self._refreshes: set[asyncio.Task[None]] = set()
        self._deferred = False
        self._unsubscribe = identity.subscribe(self._on_identity)

    # -----------------------------------------------------------------------
    # Identity handling
    # -----------------------------------------------------------------------

    def _on_identity(self, identity: Identity) -> None:
        owner = identity.owner
        if owner == self.accessor.owner:
            return

        self.accessor.reset(owner)
        self._on_reset()
        if owner is None:
            self._deferred = False
            logger.info("collection_cleared", relation=self.accessor.relation)
            return

        logger.info("collection_owner_changed", relation=self.accessor.relation, owner=owner)
        self._schedule_refresh()

    def _on_reset(self) -> None:
        """Hook for subclasses holding extra identity-bound state."""

    def _schedule_refresh(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet (e.g. built at import time); settle() runs it.
            self._deferred = True
            return
        self._deferred = False
        task = loop.create_task(self.accessor.fetch())
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)

    async def settle(self) -> None:
        """Wait for the identity-triggered fetch, running it now if deferred."""
        if self._deferred:
            self._deferred = False
            await self.accessor.fetch()
        pending = [task for task in self._refreshes if not task.done()]
        while pending:
            await asyncio.gather(*pending)
            pending = [task for task in self._refreshes if not task.done()]

    def close(self) -> None:
        """Unsubscribe from the identity provider and drop a pending fetch."""
        self._unsubscribe()
        for task in list(self._refreshes):
            task.cancel()
        self._refreshes.clear()

    # -----------------------------------------------------------------------
    # State
    # -----------------------------------------------------------------------

    @property
    def items(self) -> list[RecordT]:
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

    @property
    def owner(self) -> str | None:
        return self.accessor.owner

    def clear_error(self) -> None:
        self.accessor.clear_error()

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------

    async def refetch(self) -> None:
        if self.accessor.owner is None:
            return
        await self.accessor.fetch()

    async def add(self, payload: PayloadLike) -> RecordT | None:
        return await self.accessor.add(payload)

    async def update(self, record_id: str, fields: PayloadLike) -> RecordT | None:
        return await self.accessor.update(record_id, fields)

    async def remove(self, record_id: str) -> None:
        await self.accessor.remove(record_id)

    async def fetch_by_id(self, record_id: str) -> RecordT | None:
        return await self.accessor.fetch_one(record_id)

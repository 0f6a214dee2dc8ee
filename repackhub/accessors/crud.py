"""
RepackHub — Generic Collection Accessor

CRUD over one relation with a local, ordered cache of its rows.

- Mutations reconcile the cache surgically (append/replace/drop) instead of
  re-fetching the relation.
- The optional unique field is checked against the cache before any remote
  call. This is advisory only: two clients can still race past it, and a
  real guarantee needs a server-side constraint on the same column.
- Every public method resolves to a value or None. Failures are recorded in
  `error` / `error_kind` and never raised to the caller.
- `reset()` bumps a generation counter. Responses to requests issued under an
  older generation are discarded instead of being applied.

There is no queue: overlapping mutations all hit the store and whichever
response arrives last wins locally.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Generic, TypeVar, Union

import structlog
from pydantic import BaseModel, ValidationError

from repackhub.accessors.state import LoadState, OperationState
from repackhub.errors import (
    DuplicateValueError,
    ErrorKind,
    InvalidPayloadError,
    NotAuthenticatedError,
    NotFoundError,
    RepackHubError,
    StoreError,
)
from repackhub.store.base import Filter, Order, RemoteStore, Row
from repackhub.utils.ids import new_identifier

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)
T = TypeVar("T")

PayloadLike = Union[BaseModel, Mapping[str, Any]]


def describe_validation_error(exc: ValidationError) -> str:
    """First pydantic error as a one-line message, e.g. 'Invalid price: ...'."""
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"Invalid {location}: {first['msg']}" if location else first["msg"]


def _field_value(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


class CollectionAccessor(Generic[RecordT]):
    """
    Wraps one relation of a RemoteStore.

    Args:
        store: The remote store client.
        relation: Relation (table) name.
        record_type: pydantic model each row is parsed into.
        id_field: Domain identifier column.
        label: Singular noun used in messages ("player", "promo").
        order_by / ascending: Ordering of fetched rows.
        unique_field: Column that must be unique within the cached rows.
        static_filter: Equality filter applied to every read and write;
            its value is also written into inserted rows.
        owner_field: Owner column. When set, writes require an owner and
            every statement is scoped to it.
        id_factory: Generates identifiers client-side. None leaves
            identifier assignment to the store.
        create_type / update_type: Payload models used to validate mapping
            payloads.
        prepend_new: Place inserted rows first (for descending order).
    """

    def __init__(
        self,
        store: RemoteStore,
        relation: str,
        record_type: type[RecordT],
        *,
        id_field: str,
        label: str | None = None,
        order_by: str = "inserted_at",
        ascending: bool = True,
        unique_field: str | None = None,
        static_filter: Filter | None = None,
        owner_field: str | None = None,
        id_factory: Callable[[], Any] | None = new_identifier,
        create_type: type[BaseModel] | None = None,
        update_type: type[BaseModel] | None = None,
        prepend_new: bool = False,
    ):
        self.store = store
        self.relation = relation
        self.record_type = record_type
        self.id_field = id_field
        self.label = label or relation
        self.order = Order(order_by, ascending)
        self.unique_field = unique_field
        self.static_filter = static_filter
        self.owner_field = owner_field
        self.id_factory = id_factory
        self.create_type = create_type
        self.update_type = update_type
        self.prepend_new = prepend_new

        self.items: list[RecordT] = []
        self.owner: str | None = None
        self._state = OperationState()
        self._generation = 0
        self._log = logger.bind(relation=relation)

    # -----------------------------------------------------------------------
    # State
    # -----------------------------------------------------------------------

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def error_kind(self) -> ErrorKind | None:
        return self._state.error_kind

    @property
    def status(self) -> LoadState:
        return self._state.status

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def clear_error(self) -> None:
        self._state.clear_error()

    def reset(self, owner: str | None = None) -> None:
        """Drop cached rows and state, switch owner, invalidate in-flight requests."""
        self._generation += 1
        self.owner = owner
        self.items = []
        self._state.reset()

    async def run(self, action: str, work: Callable[[int], Awaitable[T]]) -> T | None:
        """
        Execute `work(generation)` inside the loading/error state machine.

        Loading is raised for the duration and always lowered again, errors
        are recorded, and None is returned on failure.
        """
        generation = self._generation
        self._state.begin()
        try:
            return await work(generation)
        except RepackHubError as exc:
            self._record_failure(action, generation, exc)
            return None
        except Exception as exc:
            self._log.exception("collection_unexpected_error", action=action)
            self._record_failure(
                action, generation, RepackHubError(f"Unexpected error during {action}: {exc}")
            )
            return None
        finally:
            if self.is_current(generation):
                self._state.finish()

    def _record_failure(self, action: str, generation: int, exc: RepackHubError) -> None:
        if not self.is_current(generation):
            self._log.info("stale_failure_discarded", action=action, error=exc.message)
            return
        self._state.fail(exc)
        self._log.warning(
            "collection_operation_failed",
            action=action,
            kind=exc.kind.value,
            error=exc.message,
        )

    def _discard_stale(self, action: str) -> None:
        self._log.info("stale_response_discarded", action=action)

    # -----------------------------------------------------------------------
    # Building blocks (shared with the entity collections)
    # -----------------------------------------------------------------------

    def require_owner(self, action: str) -> str | None:
        """Owner id for owner-scoped relations; raises if signed out."""
        if self.owner_field is None:
            return None
        if self.owner is None:
            raise NotAuthenticatedError(action)
        return self.owner

    def scope(self, extra: Sequence[Filter] = ()) -> list[Filter]:
        """Static filter, caller filters and owner filter, in that order."""
        filters: list[Filter] = []
        if self.static_filter is not None:
            filters.append(self.static_filter)
        filters.extend(extra)
        if self.owner_field is not None and self.owner is not None:
            filters.append(Filter(self.owner_field, self.owner))
        return filters

    def parse(self, row: Row) -> RecordT:
        try:
            return self.record_type.model_validate(row)
        except ValidationError as exc:
            raise StoreError(
                f"Malformed {self.label} row: {describe_validation_error(exc)}"
            ) from exc

    def prepare_create(self, payload: PayloadLike) -> dict[str, Any]:
        try:
            if isinstance(payload, BaseModel):
                return payload.model_dump()
            if self.create_type is not None:
                return self.create_type.model_validate(dict(payload)).model_dump()
        except ValidationError as exc:
            raise InvalidPayloadError(describe_validation_error(exc)) from exc
        return dict(payload)

    def prepare_update(self, fields: PayloadLike) -> dict[str, Any]:
        try:
            if isinstance(fields, BaseModel):
                values = fields.model_dump(exclude_unset=True)
            elif self.update_type is not None:
                values = self.update_type.model_validate(dict(fields)).model_dump(
                    exclude_unset=True
                )
            else:
                values = dict(fields)
        except ValidationError as exc:
            raise InvalidPayloadError(describe_validation_error(exc)) from exc

        for protected in (self.id_field, self.owner_field, "inserted_at"):
            if protected is not None and protected in values:
                raise InvalidPayloadError(f"{protected} cannot be changed.")
        return values

    def check_unique(
        self,
        values: Mapping[str, Any],
        *,
        exclude_id: Any = None,
        pending: Sequence[Mapping[str, Any]] = (),
    ) -> None:
        field = self.unique_field
        if field is None or field not in values:
            return
        value = values[field]
        for item in [*self.items, *pending]:
            if exclude_id is not None and _field_value(item, self.id_field) == exclude_id:
                continue
            if _field_value(item, field) == value:
                raise DuplicateValueError(field, value, updating=exclude_id is not None)

    def _new_row(self, values: Mapping[str, Any], owner: str | None) -> dict[str, Any]:
        row = dict(values)
        if self.static_filter is not None:
            row.setdefault(self.static_filter.column, self.static_filter.value)
        if self.id_factory is not None:
            row[self.id_field] = self.id_factory()
        if self.owner_field is not None and owner is not None:
            row[self.owner_field] = owner
        return row

    def _place(self, records: list[RecordT]) -> None:
        if self.prepend_new:
            self.items = [*records, *self.items]
        else:
            self.items = [*self.items, *records]

    async def apply_insert(
        self, generation: int, payloads: Sequence[PayloadLike], owner: str | None
    ) -> list[RecordT]:
        """Validate, uniqueness-check and insert payloads as one statement."""
        batch: list[dict[str, Any]] = []
        for payload in payloads:
            values = self.prepare_create(payload)
            self.check_unique(values, pending=batch)
            batch.append(values)
        if not batch:
            return []

        rows = await self.store.insert(
            self.relation, [self._new_row(values, owner) for values in batch]
        )
        if len(rows) != len(batch):
            raise StoreError(
                f"Insert into {self.relation} returned {len(rows)} of {len(batch)} rows"
            )
        records = [self.parse(row) for row in rows]

        if self.is_current(generation):
            self._place(records)
        else:
            self._discard_stale("add")
        return records

    async def apply_update(
        self, generation: int, record_id: Any, values: Mapping[str, Any]
    ) -> RecordT:
        self.check_unique(values, exclude_id=record_id)
        rows = await self.store.update(
            self.relation, values, self.scope([Filter(self.id_field, record_id)])
        )
        if not rows:
            raise NotFoundError(f"No {self.label} with {self.id_field} {record_id} was found.")
        record = self.parse(rows[0])

        if self.is_current(generation):
            self.items = [
                record if getattr(item, self.id_field) == record_id else item
                for item in self.items
            ]
        else:
            self._discard_stale("update")
        return record

    async def apply_delete(self, generation: int, record_id: Any) -> None:
        await self.store.delete(self.relation, self.scope([Filter(self.id_field, record_id)]))
        if self.is_current(generation):
            self.items = [
                item for item in self.items if getattr(item, self.id_field) != record_id
            ]
        else:
            self._discard_stale("delete")

    async def select_row(self, record_id: Any) -> Row | None:
        rows = await self.store.select(
            self.relation, self.scope([Filter(self.id_field, record_id)]), limit=1
        )
        return rows[0] if rows else None

    # -----------------------------------------------------------------------
    # Public operations
    # -----------------------------------------------------------------------

    async def fetch(self, filter: Filter | None = None) -> None:
        """Replace the cached rows with a fresh, ordered select."""

        async def work(generation: int) -> None:
            self.require_owner(f"view {self.label} records")
            extra = [filter] if filter is not None else []
            rows = await self.store.select(self.relation, self.scope(extra), order=self.order)
            records = [self.parse(row) for row in rows]
            if not self.is_current(generation):
                self._discard_stale("fetch")
                return
            self.items = records
            self._log.debug("collection_fetched", count=len(records), owner=self.owner)

        await self.run("fetch", work)

    refetch = fetch

    async def add(self, payload: PayloadLike) -> RecordT | None:
        async def work(generation: int) -> RecordT:
            owner = self.require_owner(f"add a {self.label}")
            records = await self.apply_insert(generation, [payload], owner)
            return records[0]

        return await self.run("add", work)

    async def add_many(self, payloads: Sequence[PayloadLike]) -> list[RecordT] | None:
        async def work(generation: int) -> list[RecordT]:
            owner = self.require_owner(f"add {self.label} records")
            return await self.apply_insert(generation, payloads, owner)

        return await self.run("add_many", work)

    async def update(self, record_id: Any, fields: PayloadLike) -> RecordT | None:
        async def work(generation: int) -> RecordT:
            self.require_owner(f"update a {self.label}")
            values = self.prepare_update(fields)
            return await self.apply_update(generation, record_id, values)

        return await self.run("update", work)

    async def remove(self, record_id: Any) -> None:
        async def work(generation: int) -> None:
            self.require_owner(f"delete a {self.label}")
            await self.apply_delete(generation, record_id)

        await self.run("delete", work)

    async def fetch_one(self, record_id: Any) -> RecordT | None:
        """Single-row read by identifier (and owner). Leaves the cache alone."""

        async def work(generation: int) -> RecordT:
            self.require_owner(f"view {self.label} details")
            row = await self.select_row(record_id)
            if row is None:
                raise NotFoundError(f"{self.label.capitalize()} {record_id} was not found.")
            return self.parse(row)

        return await self.run("fetch_one", work)

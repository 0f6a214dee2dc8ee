"""
RepackHub — Remote Store interface

The collections only talk to the remote relational store through this narrow
query/mutation surface. Every method is a coroutine and raises StoreError on
failure; rows are plain dicts keyed by column name.

Embedded reads return nested rows: each Embed adds a key named after its
relation holding a list of related rows (many=True) or a single row / None
(many=False). This is the PostgREST resource-embedding shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

Row = dict[str, Any]


@dataclass(frozen=True)
class Filter:
    """Equality filter: column = value."""

    column: str
    value: Any


@dataclass(frozen=True)
class Order:
    column: str
    ascending: bool = True


@dataclass(frozen=True)
class Embed:
    """
    A related relation to nest under each parent row.

    Rows of `relation` whose `remote_column` equals the parent's
    `local_column` are attached under the key `relation`. `filters` further
    restrict the related rows; a filtered-out row reads as absent.
    """

    relation: str
    local_column: str
    remote_column: str
    many: bool = True
    nested: tuple[Embed, ...] = field(default_factory=tuple)
    filters: tuple[Filter, ...] = field(default_factory=tuple)


class RemoteStore(Protocol):
    """Query/mutation surface of the remote relational store."""

    async def select(
        self,
        relation: str,
        filters: Sequence[Filter] = (),
        order: Order | None = None,
        embed: Sequence[Embed] = (),
        limit: int | None = None,
    ) -> list[Row]:
        ...

    async def insert(self, relation: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        ...

    async def update(
        self,
        relation: str,
        values: Mapping[str, Any],
        filters: Sequence[Filter],
    ) -> list[Row]:
        ...

    async def delete(self, relation: str, filters: Sequence[Filter]) -> None:
        ...

    async def upsert(
        self,
        relation: str,
        rows: Sequence[Mapping[str, Any]],
        conflict_target: Sequence[str],
    ) -> None:
        ...

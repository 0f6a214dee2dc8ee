"""
RepackHub — SQL store (SQLAlchemy async)

Implements RemoteStore directly against a relational database using the
tables declared in repackhub.models. Used for local deployments and tests
(aiosqlite) and for Postgres via asyncpg.

Embedded reads are resolved with one follow-up query per Embed level and
reshaped into the same nested rows PostgREST returns.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Mapping, Sequence

import structlog
from sqlalchemy import MetaData, Table, delete, insert, select, update
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from repackhub.errors import StoreError
from repackhub.models import Base
from repackhub.store.base import Embed, Filter, Order, Row

logger = structlog.get_logger(__name__)


def _store_error(exc: SQLAlchemyError) -> StoreError:
    """Surface the driver's message where there is one."""
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        orig = exc.orig
        return StoreError(str(orig), code=type(orig).__name__)
    return StoreError(str(exc), code=type(exc).__name__)


def _as_dict(row: Any) -> Row:
    return dict(row._mapping)


class SqlStore:
    """
    RemoteStore over an async SQLAlchemy session factory.

    Each call runs in its own session and transaction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        metadata: MetaData | None = None,
    ):
        self.session_factory = session_factory
        self._metadata = metadata if metadata is not None else Base.metadata

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _table(self, relation: str) -> Table:
        table = self._metadata.tables.get(relation)
        if table is None:
            raise StoreError(f'relation "{relation}" does not exist', code="42P01")
        return table

    def _check_columns(self, table: Table, names: Any) -> None:
        unknown = sorted(set(names) - set(table.c.keys()))
        if unknown:
            raise StoreError(
                f'column "{unknown[0]}" of relation "{table.name}" does not exist',
                code="42703",
            )

    def _where(self, table: Table, filters: Sequence[Filter]) -> list[ColumnElement[bool]]:
        self._check_columns(table, (f.column for f in filters))
        clauses = []
        for f in filters:
            column = table.c[f.column]
            clauses.append(column.is_(None) if f.value is None else column == f.value)
        return clauses

    async def _attach(self, session: AsyncSession, parents: list[Row], embed: Embed) -> None:
        """Nest rows of embed.relation under each parent row."""
        table = self._table(embed.relation)
        self._check_columns(table, [embed.remote_column])
        remote = table.c[embed.remote_column]

        scoped = self._where(table, embed.filters)

        keys = {p.get(embed.local_column) for p in parents} - {None}
        related: list[Row] = []
        if keys:
            result = await session.execute(select(table).where(remote.in_(keys), *scoped))
            related = [_as_dict(r) for r in result]

        for child in embed.nested:
            await self._attach(session, related, child)

        grouped: dict[Any, list[Row]] = defaultdict(list)
        for row in related:
            grouped[row[embed.remote_column]].append(row)

        for parent in parents:
            matches = grouped.get(parent.get(embed.local_column), [])
            if embed.many:
                parent[embed.relation] = matches
            else:
                parent[embed.relation] = matches[0] if matches else None

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
        table = self._table(relation)
        stmt = select(table).where(*self._where(table, filters))
        if order is not None:
            self._check_columns(table, [order.column])
            column = table.c[order.column]
            stmt = stmt.order_by(column.asc() if order.ascending else column.desc())
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = [_as_dict(r) for r in result]
                for e in embed:
                    await self._attach(session, rows, e)
        except SQLAlchemyError as exc:
            raise _store_error(exc) from exc
        return rows

    async def insert(self, relation: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        if not rows:
            return []
        table = self._table(relation)
        for row in rows:
            self._check_columns(table, row.keys())

        stmt = insert(table).returning(*table.c, sort_by_parameter_order=True)
        try:
            async with self.session_factory.begin() as session:
                result = await session.execute(stmt, [dict(r) for r in rows])
                inserted = [_as_dict(r) for r in result]
        except SQLAlchemyError as exc:
            raise _store_error(exc) from exc

        logger.debug("sql_insert", relation=relation, count=len(inserted))
        return inserted

    async def update(
        self,
        relation: str,
        values: Mapping[str, Any],
        filters: Sequence[Filter],
    ) -> list[Row]:
        table = self._table(relation)
        self._check_columns(table, values.keys())
        if not values:
            return await self.select(relation, filters)

        stmt = (
            update(table)
            .where(*self._where(table, filters))
            .values(dict(values))
            .returning(*table.c)
        )
        try:
            async with self.session_factory.begin() as session:
                result = await session.execute(stmt)
                updated = [_as_dict(r) for r in result]
        except SQLAlchemyError as exc:
            raise _store_error(exc) from exc
        return updated

    async def delete(self, relation: str, filters: Sequence[Filter]) -> None:
        if not filters:
            raise StoreError(f"Refusing unfiltered delete on {relation}")
        table = self._table(relation)
        stmt = delete(table).where(*self._where(table, filters))
        try:
            async with self.session_factory.begin() as session:
                result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            raise _store_error(exc) from exc
        logger.debug("sql_delete", relation=relation, count=result.rowcount)

    async def upsert(
        self,
        relation: str,
        rows: Sequence[Mapping[str, Any]],
        conflict_target: Sequence[str],
    ) -> None:
        """Insert rows; rows colliding on conflict_target are left as they are."""
        if not rows:
            return
        table = self._table(relation)
        self._check_columns(table, conflict_target)
        for row in rows:
            self._check_columns(table, row.keys())

        try:
            async with self.session_factory.begin() as session:
                dialect = session.bind.dialect.name
                if dialect == "postgresql":
                    from sqlalchemy.dialects.postgresql import insert as dialect_insert
                elif dialect == "sqlite":
                    from sqlalchemy.dialects.sqlite import insert as dialect_insert
                else:
                    raise StoreError(f"upsert is not supported on {dialect}")

                stmt = dialect_insert(table).on_conflict_do_nothing(
                    index_elements=list(conflict_target)
                )
                await session.execute(stmt, [dict(r) for r in rows])
        except SQLAlchemyError as exc:
            raise _store_error(exc) from exc

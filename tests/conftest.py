"""
RepackHub — Shared pytest Fixtures

- SQL store over a fresh aiosqlite database per test
- Signed-out identity provider
- Async test support via pytest-asyncio (asyncio_mode = "auto")
"""

from __future__ import annotations

from pathlib import Path
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from repackhub.identity import IdentityProvider
from repackhub.models import Base
from repackhub.store.sql import SqlStore


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    File-backed SQLite database with every RepackHub table.

    A file (rather than :memory:) lets each session use its own connection,
    so concurrent store calls behave like they would against Postgres.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'repackhub.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    await engine.dispose()


@pytest.fixture
def sql_store(session_factory: async_sessionmaker[AsyncSession]) -> SqlStore:
    return SqlStore(session_factory)


@pytest.fixture
def identity() -> IdentityProvider:
    """Starts signed out."""
    return IdentityProvider()

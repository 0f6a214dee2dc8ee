"""
RepackHub — Application Entrypoint

Configures structlog, builds the remote store for the configured backend and
wires every identity-scoped collection into a Workspace.

Run via:
    python -m repackhub.main --user-id U1
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from contextlib import AsyncExitStack
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from repackhub import __version__
from repackhub.accessors.cards import CardsCollection
from repackhub.accessors.players import PlayersCollection
from repackhub.accessors.promos import PromosCollection
from repackhub.accessors.repacks import RepacksCollection
from repackhub.accessors.scoped import IdentityScopedCollection
from repackhub.config import StoreBackend, settings
from repackhub.identity import Identity, IdentityProvider
from repackhub.models import Base
from repackhub.store.base import RemoteStore
from repackhub.store.blob import BlobStorage, SupabaseBlobStorage
from repackhub.store.postgrest import PostgrestStore
from repackhub.store.sql import SqlStore


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Database Setup
# ---------------------------------------------------------------------------


async def create_db_engine(
    database_url: str | None = None,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Create the async engine and session factory and make sure the tables exist.

    Postgres URLs use asyncpg, SQLite URLs use aiosqlite.

    Returns:
        (engine, session_factory) tuple.
    """
    logger = structlog.get_logger(__name__)
    url = database_url or settings.DATABASE_URL

    logger.info("database_engine_initializing", database_url=url)

    engine_kwargs: dict[str, Any] = {"echo": False, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        engine_kwargs.update(pool_size=5, max_overflow=10)
    engine = create_async_engine(url, **engine_kwargs)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    logger.info("database_engine_ready")
    return engine, session_factory


# ---------------------------------------------------------------------------
# Workspace wiring
# ---------------------------------------------------------------------------


@dataclass
class Workspace:
    """All identity-scoped collections sharing one store and identity."""

    identity: IdentityProvider
    players: PlayersCollection
    cards: CardsCollection
    promos: PromosCollection
    repacks: RepacksCollection

    def collections(self) -> dict[str, IdentityScopedCollection[Any]]:
        return {
            "players": self.players,
            "cards": self.cards,
            "promos": self.promos,
            "repacks": self.repacks,
        }

    async def settle(self) -> None:
        await asyncio.gather(*(c.settle() for c in self.collections().values()))

    def close(self) -> None:
        for collection in self.collections().values():
            collection.close()


def build_workspace(
    store: RemoteStore,
    identity: IdentityProvider,
    blob_storage: BlobStorage | None = None,
) -> Workspace:
    return Workspace(
        identity=identity,
        players=PlayersCollection(store, identity, blob_storage),
        cards=CardsCollection(store, identity),
        promos=PromosCollection(store, identity),
        repacks=RepacksCollection(store, identity),
    )


async def build_store(stack: AsyncExitStack) -> tuple[RemoteStore, BlobStorage | None]:
    """
    Open the store for settings.STORE_BACKEND. Resources are released when
    `stack` closes.
    """
    logger = structlog.get_logger(__name__)

    if settings.STORE_BACKEND == StoreBackend.POSTGREST:
        if not settings.SUPABASE_URL:
            logger.warning("config_supabase_url_missing")
        store = await stack.enter_async_context(PostgrestStore())
        blobs = await stack.enter_async_context(SupabaseBlobStorage())
        return store, blobs

    engine, session_factory = await create_db_engine()
    stack.push_async_callback(engine.dispose)

    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        logger.info("database_health_check_passed")
    except Exception as e:
        logger.error(
            "database_health_check_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise

    # No blob storage for the SQL backend; profile pictures need Supabase.
    return SqlStore(session_factory), None


# ---------------------------------------------------------------------------
# Application Startup
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Load every RepackHub collection for a user.")
    parser.add_argument(
        "--user-id",
        type=str,
        default=None,
        help="Identity to sign in as. Without it the collections stay empty.",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(log_level=settings.LOG_LEVEL)
    logger = structlog.get_logger(__name__)

    logger.info(
        "repackhub_startup_begin",
        version=__version__,
        backend=settings.STORE_BACKEND.value,
    )

    identity = IdentityProvider(
        Identity.authenticated(args.user_id) if args.user_id else Identity.anonymous()
    )

    async with AsyncExitStack() as stack:
        store, blobs = await build_store(stack)
        workspace = build_workspace(store, identity, blobs)
        try:
            await workspace.settle()
            for name, collection in workspace.collections().items():
                logger.info(
                    "collection_loaded",
                    collection=name,
                    count=len(collection.items),
                    error=collection.error,
                )
        finally:
            workspace.close()

    logger.info("repackhub_shutdown_complete")


if __name__ == "__main__":
    asyncio.run(main())

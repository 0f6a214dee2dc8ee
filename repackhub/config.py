"""
RepackHub — Configuration & Constants

Connection settings for the remote store and blob storage, retry behaviour
for the HTTP client, and the recommended repack status labels.

Usage:
    from repackhub.config import settings
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class RepackStatus(str, Enum):
    """Recommended repack status labels. The stored field stays a string."""
    AVAILABLE = "available"
    SOLD = "sold"
    DRAFT = "draft"


class StoreBackend(str, Enum):
    """Which RemoteStore implementation main.build_store() wires up."""
    POSTGREST = "postgrest"
    SQL = "sql"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Central configuration for RepackHub.

    Loads from environment variables (or a local .env) with fallback defaults.
    """

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # -----------------------------------------------------------------------
    # Remote store
    # -----------------------------------------------------------------------
    STORE_BACKEND: StoreBackend = StoreBackend.SQL
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""                  # anon (public) key, sent as apikey header
    DATABASE_URL: str = "sqlite+aiosqlite:///./repackhub.db"

    # -----------------------------------------------------------------------
    # HTTP client behaviour (PostgREST + Storage)
    # -----------------------------------------------------------------------
    HTTP_TIMEOUT_SECONDS: float = 30.0
    HTTP_MAX_RETRIES: int = 3               # reads only; writes are never retried
    HTTP_BASE_BACKOFF_SECONDS: float = 1.0

    # -----------------------------------------------------------------------
    # Blob storage (player profile pictures)
    # -----------------------------------------------------------------------
    PROFILE_PIC_BUCKET: str = "profile-pics"
    PROFILE_PIC_CACHE_CONTROL: str = "3600"

    # -----------------------------------------------------------------------
    # Collections
    # -----------------------------------------------------------------------
    REPACK_STATUSES: list[str] = Field(
        default_factory=lambda: [status.value for status in RepackStatus]
    )
    STRICT_REPACK_STATUS: bool = False      # reject statuses outside REPACK_STATUSES

    # -----------------------------------------------------------------------
    # Logging
    # -----------------------------------------------------------------------
    LOG_LEVEL: str = "INFO"


# Singleton instance
settings = Settings()

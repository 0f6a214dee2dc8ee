"""
SQLAlchemy 2.0 async DeclarativeBase for RepackHub.

All table models inherit from this Base. SqlStore resolves relation names
through Base.metadata.tables.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Python-side default for inserted_at columns."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all RepackHub database models."""
    pass

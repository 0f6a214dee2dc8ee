"""
RepackHub — Repack & RepackPromo Models

repack_promo is the join relation for the repack <-> promo many-to-many.
Its composite primary key is the upsert conflict target, so linking the
same pair twice leaves exactly one row.
"""

from __future__ import annotations

from datetime import date as date_type, datetime
from decimal import Decimal

from sqlalchemy import (
    DATE,
    DECIMAL as SA_DECIMAL,
    INTEGER,
    TIMESTAMP,
    ForeignKey,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from repackhub.models.base import Base, utcnow


class Repack(Base):
    """A bundle of cards sold as one product."""

    __tablename__ = "repacks"

    repacks_id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[date_type] = mapped_column(DATE, nullable=False)
    quantity: Mapped[int] = mapped_column(
        INTEGER, nullable=False, comment="Number of slots in the repack"
    )
    price: Mapped[Decimal] = mapped_column(SA_DECIMAL(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, comment="available, sold, draft (not a closed set)"
    )
    inserted_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    def __repr__(self) -> str:
        return (
            f"<Repack repacks_id={self.repacks_id!r} title={self.title!r} "
            f"status={self.status!r}>"
        )


class RepackPromo(Base):
    """Join row linking one repack to one promo."""

    __tablename__ = "repack_promo"

    repack_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("repacks.repacks_id", ondelete="CASCADE"),
        primary_key=True,
    )
    promo_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("promo.promo_id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    inserted_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<RepackPromo repack={self.repack_id!r} promo={self.promo_id!r}>"

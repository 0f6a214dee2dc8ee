"""
RepackHub — Promo Model
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DECIMAL as SA_DECIMAL, INTEGER, TIMESTAMP, String, func
from sqlalchemy.orm import Mapped, mapped_column

from repackhub.models.base import Base, utcnow


class Promo(Base):
    """A promotional item that can be attached to any number of repacks."""

    __tablename__ = "promo"

    promo_id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    qty: Mapped[int] = mapped_column(INTEGER, nullable=False)
    free: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="Free item description, e.g. '1 sleeve'"
    )
    price: Mapped[Decimal] = mapped_column(SA_DECIMAL(10, 2), nullable=False)
    inserted_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Promo promo_id={self.promo_id!r} title={self.title!r} price={self.price}>"

"""
RepackHub — Card Model
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import TIMESTAMP, String, func
from sqlalchemy.orm import Mapped, mapped_column

from repackhub.models.base import Base, utcnow


class Card(Base):
    """A card in an owner's catalogue. No uniqueness beyond card_id."""

    __tablename__ = "cards"

    card_id: Mapped[str] = mapped_column(String, primary_key=True)
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    box_name: Mapped[str] = mapped_column(
        String, nullable=False, comment="Box / series the card was pulled from"
    )
    card_code: Mapped[str] = mapped_column(
        String, nullable=False, comment="Printed set code, e.g. 'OP01-001'"
    )
    image_name: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="Image filename, resolved by the UI"
    )
    inserted_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Card card_id={self.card_id!r} code={self.card_code!r}>"

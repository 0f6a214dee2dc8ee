"""
RepackHub — Player & Player MOP Models

Players are owner-scoped. The player name is unique per owner, but that is
enforced client-side only; the table carries no constraint for it.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import INTEGER, TIMESTAMP, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from repackhub.models.base import Base, utcnow


class Player(Base):
    """A community player record, owned by exactly one identity."""

    __tablename__ = "players"

    player_id: Mapped[str] = mapped_column(
        String, primary_key=True, comment="Client-generated UUID string"
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String, nullable=True)
    address: Mapped[str | None] = mapped_column(String, nullable=True)
    contact_number: Mapped[str | None] = mapped_column(String, nullable=True)
    profile_pic_url: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="Public URL in the profile-pics bucket"
    )
    inserted_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(
        String, nullable=False, index=True, comment="Owner identity"
    )

    def __repr__(self) -> str:
        return f"<Player player_id={self.player_id!r} name={self.name!r}>"


class PlayerMop(Base):
    """A player's mode of payment. Identifier is assigned by the database."""

    __tablename__ = "player_mop"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("players.player_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mop: Mapped[str] = mapped_column(String, nullable=False, comment="e.g. 'GCash'")
    acc_number: Mapped[str] = mapped_column(String, nullable=False)
    inserted_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<PlayerMop id={self.id!r} player_id={self.player_id!r} mop={self.mop!r}>"

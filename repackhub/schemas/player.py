"""
Player and player mode-of-payment schemas.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import Field

from repackhub.schemas.base import Payload, Record, UpdatePayload


class Player(Record):
    player_id: str
    name: str
    full_name: str | None = None
    address: str | None = None
    contact_number: str | None = None
    profile_pic_url: str | None = None
    inserted_at: datetime
    user_id: str


class PlayerCreate(Payload):
    name: str = Field(..., min_length=1)
    full_name: str | None = None
    address: str | None = None
    contact_number: str | None = None


class PlayerUpdate(UpdatePayload):
    """Partial update. profile_pic_url is managed through ProfilePicture."""

    nullable = frozenset({"full_name", "address", "contact_number"})

    name: str | None = Field(default=None, min_length=1)
    full_name: str | None = None
    address: str | None = None
    contact_number: str | None = None


@dataclass(frozen=True)
class ProfilePicture:
    """Image bytes supplied alongside a player update."""

    filename: str
    content: bytes
    content_type: str | None = None

    @property
    def extension(self) -> str:
        _, dot, ext = self.filename.rpartition(".")
        return ext.lower() if dot and ext else "bin"


class PlayerMop(Record):
    id: int
    player_id: str
    mop: str
    acc_number: str
    inserted_at: datetime


class PlayerMopCreate(Payload):
    """player_id is filled in from the collection's static filter."""

    mop: str = Field(..., min_length=1)
    acc_number: str = Field(..., min_length=1)


class PlayerMopUpdate(UpdatePayload):
    mop: str | None = Field(default=None, min_length=1)
    acc_number: str | None = Field(default=None, min_length=1)

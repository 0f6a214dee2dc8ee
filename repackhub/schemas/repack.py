"""
Repack schemas and the explicit intermediate shape of the
repack -> repack_promo -> promo embedded read.

Status is kept as a validated string: stripped, lower-cased and non-empty.
With STRICT_REPACK_STATUS enabled it must also be one of REPACK_STATUSES.
"""

from __future__ import annotations

from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from repackhub.config import RepackStatus, settings
from repackhub.schemas.base import Payload, Record, UpdatePayload, parse_money
from repackhub.schemas.promo import Promo


def normalize_status(value: Any) -> Any:
    """Strip/lower-case a status and apply the strict-set check if enabled."""
    if not isinstance(value, str):
        return value
    status = value.strip().lower()
    if not status:
        raise ValueError("status must not be empty")
    if settings.STRICT_REPACK_STATUS and status not in settings.REPACK_STATUSES:
        allowed = ", ".join(settings.REPACK_STATUSES)
        raise ValueError(f"status must be one of: {allowed}")
    return status


class Repack(Record):
    repacks_id: str
    title: str
    date: date_type
    quantity: int
    price: Decimal
    status: str
    inserted_at: datetime
    user_id: str

    @field_validator("price", mode="before")
    @classmethod
    def _parse_price(cls, v: Any) -> Decimal | None:
        return parse_money(v)

    @property
    def slot_count(self) -> int:
        """Each unit of quantity is one slot in the repack."""
        return self.quantity


class RepackCreate(Payload):
    title: str = Field(..., min_length=1)
    date: date_type
    quantity: int = Field(..., ge=0)
    price: Decimal = Field(..., ge=0)
    status: str = RepackStatus.DRAFT.value

    @field_validator("price", mode="before")
    @classmethod
    def _parse_price(cls, v: Any) -> Decimal | None:
        return parse_money(v)

    @field_validator("status", mode="before")
    @classmethod
    def _check_status(cls, v: Any) -> Any:
        return normalize_status(v)


class RepackUpdate(UpdatePayload):
    title: str | None = Field(default=None, min_length=1)
    date: date_type | None = None
    quantity: int | None = Field(default=None, ge=0)
    price: Decimal | None = Field(default=None, ge=0)
    status: str | None = None

    @field_validator("price", mode="before")
    @classmethod
    def _parse_price(cls, v: Any) -> Decimal | None:
        return parse_money(v)

    @field_validator("status", mode="before")
    @classmethod
    def _check_status(cls, v: Any) -> Any:
        return normalize_status(v)


class RepackPromo(Record):
    repack_id: str
    promo_id: str
    user_id: str
    inserted_at: datetime | None = None


class RepackWithPromos(Repack):
    associated_promos: list[Promo] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Embedded-read intermediate shape
# ---------------------------------------------------------------------------

class RepackJoinRow(BaseModel):
    """One repack_promo row with its promo resolved (None if dangling)."""

    promo: Promo | None = None


class RepackJoinResult(BaseModel):
    repack: Repack
    join_rows: list[RepackJoinRow] = Field(default_factory=list)

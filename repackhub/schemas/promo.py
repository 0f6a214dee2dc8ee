"""
Promo schemas.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import Field, field_validator

from repackhub.schemas.base import Payload, Record, UpdatePayload, parse_money


class Promo(Record):
    promo_id: str
    title: str
    qty: int
    free: str | None = None
    price: Decimal
    inserted_at: datetime
    user_id: str

    @field_validator("price", mode="before")
    @classmethod
    def _parse_price(cls, v: Any) -> Decimal | None:
        return parse_money(v)


class PromoCreate(Payload):
    title: str = Field(..., min_length=1)
    qty: int = Field(..., ge=0)
    free: str | None = None
    price: Decimal = Field(..., ge=0)

    @field_validator("price", mode="before")
    @classmethod
    def _parse_price(cls, v: Any) -> Decimal | None:
        return parse_money(v)


class PromoUpdate(UpdatePayload):
    nullable = frozenset({"free"})

    title: str | None = Field(default=None, min_length=1)
    qty: int | None = Field(default=None, ge=0)
    free: str | None = None
    price: Decimal | None = Field(default=None, ge=0)

    @field_validator("price", mode="before")
    @classmethod
    def _parse_price(cls, v: Any) -> Decimal | None:
        return parse_money(v)

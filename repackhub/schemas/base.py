"""
Shared pydantic plumbing for record and payload schemas.

Records mirror rows returned by the remote store and ignore unknown columns.
Payloads are what callers hand to a collection and forbid unknown fields.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

TWO_PLACES = Decimal("0.01")


class Record(BaseModel):
    """A row as returned by the remote store."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class Payload(BaseModel):
    """A create/update payload supplied by a caller."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class UpdatePayload(Payload):
    """
    A partial update. Omitted fields are left alone; an explicit None is only
    accepted for the columns listed in `nullable`.
    """

    nullable: ClassVar[frozenset[str]] = frozenset()

    @field_validator("*")
    @classmethod
    def _reject_null(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None and info.field_name not in cls.nullable:
            raise ValueError("must not be null")
        return v


def parse_money(value: Any) -> Decimal | None:
    """
    Convert a price value to a two-place Decimal. Never goes through float
    arithmetic: floats are converted via their shortest repr.

    Raises:
        ValueError: on non-numeric input or more than two decimal places.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("price must be a decimal amount")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        quantized = amount.quantize(TWO_PLACES)
    except (InvalidOperation, ValueError) as exc:
        raise ValueError("price must be a decimal amount") from exc
    if quantized != amount:
        raise ValueError("price must have at most two decimal places")
    return quantized

"""
Card schemas, including the JSON bulk-import shape.
"""

from __future__ import annotations

import json
from datetime import datetime

from pydantic import Field, TypeAdapter, ValidationError

from repackhub.errors import InvalidPayloadError
from repackhub.schemas.base import Payload, Record, UpdatePayload


class Card(Record):
    card_id: str
    display_name: str
    box_name: str
    card_code: str
    image_name: str | None = None
    inserted_at: datetime
    user_id: str


class CardCreate(Payload):
    display_name: str = Field(..., min_length=1)
    box_name: str = Field(..., min_length=1)
    card_code: str = Field(..., min_length=1)
    image_name: str | None = None


class CardUpdate(UpdatePayload):
    nullable = frozenset({"image_name"})

    display_name: str | None = Field(default=None, min_length=1)
    box_name: str | None = Field(default=None, min_length=1)
    card_code: str | None = Field(default=None, min_length=1)
    image_name: str | None = None


class JsonCardInput(Payload):
    """One entry of a card import file. image_filename maps to image_name."""

    box_name: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    card_code: str = Field(..., min_length=1)
    image_filename: str | None = None

    def to_create(self) -> CardCreate:
        return CardCreate(
            display_name=self.display_name,
            box_name=self.box_name,
            card_code=self.card_code,
            image_name=self.image_filename or None,
        )


_card_list_adapter = TypeAdapter(list[JsonCardInput])


def load_card_json(text: str) -> list[JsonCardInput]:
    """
    Parse a JSON array of card entries.

    Raises:
        InvalidPayloadError: if the text is not JSON or an entry is invalid.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidPayloadError(f"Card file is not valid JSON: {exc.msg}") from exc
    if not isinstance(data, list):
        raise InvalidPayloadError("Card file must contain a JSON array of cards.")
    try:
        return _card_list_adapter.validate_python(data)
    except ValidationError as exc:
        raise InvalidPayloadError(f"Invalid card entry: {exc.errors()[0]['msg']}") from exc

"""
RepackHub — Cards collection

Besides single-card CRUD, cards can be bulk-imported from a JSON array
(see schemas.card.load_card_json) in a single insert.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from pydantic import ValidationError

from repackhub.accessors.crud import CollectionAccessor, describe_validation_error
from repackhub.accessors.scoped import IdentityScopedCollection
from repackhub.errors import InvalidPayloadError
from repackhub.identity import IdentityProvider
from repackhub.models.card import Card as CardTable
from repackhub.schemas.card import Card, CardCreate, CardUpdate, JsonCardInput
from repackhub.store.base import RemoteStore

logger = structlog.get_logger(__name__)


class CardsCollection(IdentityScopedCollection[Card]):
    def __init__(self, store: RemoteStore, identity: IdentityProvider):
        accessor = CollectionAccessor(
            store,
            CardTable.__tablename__,
            Card,
            id_field="card_id",
            label="card",
            order_by="inserted_at",
            ascending=False,
            owner_field="user_id",
            create_type=CardCreate,
            update_type=CardUpdate,
            prepend_new=True,
        )
        super().__init__(accessor, identity)

    async def add(self, payload: CardCreate | Mapping[str, Any]) -> Card | None:
        return await self.accessor.add(payload)

    async def update(self, card_id: str, fields: CardUpdate | Mapping[str, Any]) -> Card | None:
        return await self.accessor.update(card_id, fields)

    async def upload_json(
        self, entries: Sequence[JsonCardInput | Mapping[str, Any]]
    ) -> list[Card] | None:
        """Insert every entry in one statement; new cards go to the top."""
        accessor = self.accessor

        async def work(generation: int) -> list[Card]:
            owner = accessor.require_owner("upload cards")
            try:
                parsed = [
                    e if isinstance(e, JsonCardInput) else JsonCardInput.model_validate(e)
                    for e in entries
                ]
            except ValidationError as exc:
                raise InvalidPayloadError(describe_validation_error(exc)) from exc

            cards = await accessor.apply_insert(
                generation, [entry.to_create() for entry in parsed], owner
            )
            logger.info("cards_uploaded", count=len(cards), owner=owner)
            return cards

        return await accessor.run("upload", work)

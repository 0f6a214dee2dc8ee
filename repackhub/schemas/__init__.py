"""
Schemas package — pydantic records and payloads for every collection.
"""

from repackhub.schemas.card import Card, CardCreate, CardUpdate, JsonCardInput, load_card_json
from repackhub.schemas.player import (
    Player,
    PlayerCreate,
    PlayerMop,
    PlayerMopCreate,
    PlayerMopUpdate,
    PlayerUpdate,
    ProfilePicture,
)
from repackhub.schemas.promo import Promo, PromoCreate, PromoUpdate
from repackhub.schemas.repack import (
    Repack,
    RepackCreate,
    RepackJoinResult,
    RepackJoinRow,
    RepackPromo,
    RepackUpdate,
    RepackWithPromos,
)

__all__ = [
    "Card",
    "CardCreate",
    "CardUpdate",
    "JsonCardInput",
    "Player",
    "PlayerCreate",
    "PlayerMop",
    "PlayerMopCreate",
    "PlayerMopUpdate",
    "PlayerUpdate",
    "ProfilePicture",
    "Promo",
    "PromoCreate",
    "PromoUpdate",
    "Repack",
    "RepackCreate",
    "RepackJoinResult",
    "RepackJoinRow",
    "RepackPromo",
    "RepackUpdate",
    "RepackWithPromos",
    "load_card_json",
]

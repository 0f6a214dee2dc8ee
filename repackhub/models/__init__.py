"""
Models package — export all SQLAlchemy models.
"""

from repackhub.models.base import Base
from repackhub.models.card import Card
from repackhub.models.player import Player, PlayerMop
from repackhub.models.promo import Promo
from repackhub.models.repack import Repack, RepackPromo

__all__ = ["Base", "Card", "Player", "PlayerMop", "Promo", "Repack", "RepackPromo"]

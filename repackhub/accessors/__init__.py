from repackhub.accessors.cards import CardsCollection
from repackhub.accessors.crud import CollectionAccessor
from repackhub.accessors.player_mops import PlayerMopsCollection
from repackhub.accessors.players import PlayersCollection
from repackhub.accessors.promos import PromosCollection
from repackhub.accessors.repacks import RepackPromoLinks, RepacksCollection
from repackhub.accessors.scoped import IdentityScopedCollection
from repackhub.accessors.state import LoadState, OperationState

__all__ = [
    "CardsCollection",
    "CollectionAccessor",
    "IdentityScopedCollection",
    "LoadState",
    "OperationState",
    "PlayerMopsCollection",
    "PlayersCollection",
    "PromosCollection",
    "RepackPromoLinks",
    "RepacksCollection",
]

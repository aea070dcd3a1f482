# Domain Entities
"""
Domain entities and value objects.
"""

from seconde.domain.entities.embedding import EmbeddingRecord, price_range
from seconde.domain.entities.item import GeoPoint, Item, SearchIndexEntry, utcnow
from seconde.domain.entities.moment import Moment
from seconde.domain.entities.swap_party import (
    LeaderboardEntry,
    Swap,
    SwapParty,
    SwapPartyStatus,
)
from seconde.domain.entities.user import (
    StyleProfile,
    SuggestedSizes,
    UserPreferences,
    UserProfile,
)

__all__ = [
    "EmbeddingRecord",
    "price_range",
    "GeoPoint",
    "Item",
    "SearchIndexEntry",
    "utcnow",
    "Moment",
    "LeaderboardEntry",
    "Swap",
    "SwapParty",
    "SwapPartyStatus",
    "StyleProfile",
    "SuggestedSizes",
    "UserPreferences",
    "UserProfile",
]

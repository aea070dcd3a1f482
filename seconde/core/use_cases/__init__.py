# Use Cases Package
"""
Application use cases (discovery logic).

Use cases orchestrate the flow of data between domain entities, the
similarity matcher and the stores.
"""

from seconde.core.use_cases.feed import ComposeFeedUseCase, FeedResult, FeedSignals, resolve_signals
from seconde.core.use_cases.moments import MomentMatches, MomentsUseCase
from seconde.core.use_cases.nearby import NearbyItem, NearbyItemsUseCase
from seconde.core.use_cases.swap_parties import ActivePartyInfo, SwapPartyUseCase

__all__ = [
    # Feed
    "ComposeFeedUseCase",
    "FeedResult",
    "FeedSignals",
    "resolve_signals",
    # Moments
    "MomentMatches",
    "MomentsUseCase",
    # Nearby
    "NearbyItem",
    "NearbyItemsUseCase",
    # Swap parties
    "ActivePartyInfo",
    "SwapPartyUseCase",
]

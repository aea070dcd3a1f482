"""
Callable entry points of the discovery backend.

Every method is a coroutine that runs the synchronous core in a worker
thread under a time budget. Whatever goes wrong inside is turned into a
CallableError with one of a small set of stable kinds; store or model
specific exception types never reach the caller.

Example:
    >>> api = DiscoveryAPI.from_config(get_config())
    >>> asyncio.run(api.get_similar_products("item-1", include_score=True))
    {'results': [...], 'fallback': False}
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from seconde.core.indexing.maintainer import IndexMaintainer
from seconde.core.matching.similarity_matcher import ScoredItem, SimilarityMatcher
from seconde.core.scoring.similarity import to_percentage
from seconde.core.use_cases import (
    ComposeFeedUseCase,
    MomentsUseCase,
    NearbyItemsUseCase,
    SwapPartyUseCase,
)
from seconde.database.document_store import DocumentStore
from seconde.database.vector_store import EmbeddingStore
from seconde.domain.entities import GeoPoint, SearchIndexEntry, SwapParty
from seconde.domain.entities.item import utcnow
from seconde.domain.interfaces import EmbeddingRepositoryInterface, EncoderInterface
from seconde.utils import get_logger, log_exception
from seconde.utils.config import AppConfig
from seconde.utils.exceptions import (
    CallableError,
    EmbeddingMismatchError,
    ErrorKind,
    InvalidInputError,
    ItemNotFoundError,
    PermissionDeniedError,
)
from seconde.utils.image_utils import load_image_bytes

logger = get_logger(__name__)


def to_callable_error(operation: str, error: Exception) -> CallableError:
    """Map an internal exception onto a caller-facing error kind."""
    if isinstance(error, CallableError):
        return error
    if isinstance(error, ItemNotFoundError):
        return CallableError(ErrorKind.NOT_FOUND, error.message)
    if isinstance(error, PermissionDeniedError):
        return CallableError(ErrorKind.PERMISSION_DENIED, error.message)
    if isinstance(error, (InvalidInputError, EmbeddingMismatchError)):
        return CallableError(ErrorKind.INVALID_ARGUMENT, error.message)
    if isinstance(error, (ValueError, TypeError)):
        return CallableError(ErrorKind.INVALID_ARGUMENT, str(error))

    log_exception(logger, operation, error)
    return CallableError(ErrorKind.INTERNAL, f"Failed to {operation}")


def product_row(entry: SearchIndexEntry, score: Optional[float] = None) -> Dict[str, Any]:
    """Public fields of an indexed item, with the similarity as a percentage."""
    row = {
        "item_id": entry.id,
        "title": entry.title,
        "price": entry.price,
        "image_url": entry.first_image,
        "brand": entry.brand,
        "condition": entry.condition,
    }
    if score is not None:
        row["similarity"] = to_percentage(score)
    return row


def party_summary(party: Optional[SwapParty]) -> Optional[Dict[str, Any]]:
    if party is None:
        return None
    return {
        "id": party.id,
        "name": party.name,
        "emoji": party.emoji,
        "description": party.description,
        "status": party.status.value,
        "start_date": party.start_date.isoformat(),
        "end_date": party.end_date.isoformat(),
        "participants_count": party.participants_count,
        "items_count": party.items_count,
        "swaps_count": party.swaps_count,
    }


class DiscoveryAPI:
    """
    Async facade over the discovery core.

    Attributes:
        documents: Document store
        matcher: Similarity matcher
        maintainer: Index maintainer for counter updates
        config: Application configuration
    """

    def __init__(
        self,
        documents: DocumentStore,
        embeddings: EmbeddingRepositoryInterface,
        config: AppConfig,
        encoder: Optional[EncoderInterface] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.documents = documents
        self.config = config
        self.clock = clock

        self.matcher = SimilarityMatcher(embeddings, documents, config.similarity, encoder)
        self.maintainer = IndexMaintainer(
            documents, config.popularity, config.geo.geohash_precision, clock
        )
        self.feed = ComposeFeedUseCase(documents)
        self.moments = MomentsUseCase(documents, self.matcher, config.similarity)
        self.nearby = NearbyItemsUseCase(documents, config.geo)
        self.swap_parties = SwapPartyUseCase(documents)

    @classmethod
    def from_config(cls, config: AppConfig, encoder: Optional[EncoderInterface] = None) -> "DiscoveryAPI":
        """Build the stores described by the configuration."""
        return cls(
            DocumentStore(config.database),
            EmbeddingStore(config.vector_store),
            config,
            encoder=encoder,
        )

    async def _call(self, operation: str, budget: float, func: Callable[..., Any], *args: Any) -> Any:
        """Run ``func`` off the event loop within ``budget`` seconds.

        The worker thread is not interrupted on timeout; its result is
        discarded.
        """
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=budget)
        except asyncio.TimeoutError as e:
            logger.warning(f"{operation} exceeded its {budget}s budget")
            raise CallableError(
                ErrorKind.DEADLINE_EXCEEDED, f"{operation} timed out after {budget}s"
            ) from e
        except CallableError:
            raise
        except Exception as e:
            raise to_callable_error(operation, e) from e

    # ---------------------------------------------------------------
    # Similarity
    # ---------------------------------------------------------------

    async def get_similar_products(
        self,
        item_id: str,
        limit: Optional[int] = None,
        include_score: bool = False,
    ) -> Dict[str, Any]:
        """Items similar to ``item_id``; ``fallback`` flags the category fallback."""
        if not item_id:
            raise CallableError(ErrorKind.INVALID_ARGUMENT, "item_id is required")

        def run() -> Dict[str, Any]:
            result = self.matcher.similar_to_item(item_id, limit=limit)
            if result.fallback:
                return {
                    "results": [product_row(entry) for entry in result.fallback_items],
                    "fallback": True,
                }
            return {
                "results": [
                    product_row(match.entry, match.score if include_score else None)
                    for match in result.matches
                ],
                "fallback": False,
            }

        return await self._call("get similar products", self.config.timeouts.similar_products, run)

    async def visual_search(
        self,
        image_vector: Optional[List[float]] = None,
        image_bytes: Optional[bytes] = None,
        limit: Optional[int] = None,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Items resembling an uploaded photo or a precomputed photo vector."""
        if image_vector is None and not image_bytes:
            raise CallableError(ErrorKind.INVALID_ARGUMENT, "image_vector or image_bytes is required")

        def run() -> Dict[str, Any]:
            if image_vector is not None:
                matches = self.matcher.visual_search(
                    image_vector=np.asarray(image_vector, dtype=np.float32), limit=limit, filters=filters
                )
            else:
                matches = self.matcher.visual_search(
                    image=load_image_bytes(image_bytes), limit=limit, filters=filters
                )
            return {"results": self._scored_rows(matches)}

        return await self._call("run visual search", self.config.timeouts.visual_search, run)

    # ---------------------------------------------------------------
    # Moments
    # ---------------------------------------------------------------

    async def get_active_moments(self) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            return {"moments": [m.summary() for m in self.moments.active_moments(self.clock())]}

        return await self._call("get active moments", self.config.timeouts.default, run)

    async def get_moment_products(
        self,
        moment_id: str,
        limit: Optional[int] = None,
        min_score: Optional[float] = None,
    ) -> Dict[str, Any]:
        if not moment_id:
            raise CallableError(ErrorKind.INVALID_ARGUMENT, "moment_id is required")

        def run() -> Dict[str, Any]:
            matched = self.moments.match_moment(moment_id, limit=limit, min_score=min_score)
            moment = matched.moment
            return {
                "results": [product_row(m.entry, m.score) for m in matched.matches],
                "moment": {"id": moment.id, "name": moment.name, "emoji": moment.emoji},
            }

        return await self._call("get moment products", self.config.timeouts.default, run)

    # ---------------------------------------------------------------
    # Feeds
    # ---------------------------------------------------------------

    async def compose_feed(self, user_id: str, limit: int = 10) -> Dict[str, Any]:
        """Personalized feed; ``has_profile`` is False when no signal exists."""

        def run() -> Dict[str, Any]:
            result = self.feed.execute(user_id, limit)
            return {
                "results": [product_row(entry) for entry in result.items],
                "source": result.source,
                "style_tags": result.style_tags,
                "has_profile": result.has_signal,
            }

        return await self._call("compose feed", self.config.timeouts.default, run)

    async def get_nearby_items(
        self,
        latitude: float,
        longitude: float,
        max_distance_km: Optional[float] = None,
        limit: int = 10,
        exclude_user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            nearby = self.nearby.execute(
                GeoPoint(latitude, longitude), max_distance_km, limit, exclude_user_id
            )
            results = []
            for item in nearby:
                row = product_row(item.entry)
                row["city"] = item.entry.city
                row["distance_km"] = round(item.distance_km, 1)
                results.append(row)
            return {"results": results}

        return await self._call("get nearby items", self.config.timeouts.default, run)

    # ---------------------------------------------------------------
    # Counters
    # ---------------------------------------------------------------

    async def increment_product_view(self, product_id: str) -> Dict[str, Any]:
        if not product_id:
            raise CallableError(ErrorKind.INVALID_ARGUMENT, "product_id is required")

        views = await self._call(
            "increment product view", self.config.timeouts.default,
            self.maintainer.increment_view, product_id,
        )
        return {"success": True, "views": views}

    async def toggle_product_like(
        self,
        product_id: str,
        is_liked: bool,
        auth_uid: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Like or unlike a product on behalf of the authenticated caller."""
        if not auth_uid:
            raise CallableError(ErrorKind.UNAUTHENTICATED, "User must be authenticated")
        if not product_id or not isinstance(is_liked, bool):
            raise CallableError(ErrorKind.INVALID_ARGUMENT, "Product ID and like status are required")

        likes = await self._call(
            "toggle product like", self.config.timeouts.default,
            self.maintainer.toggle_like, product_id, auth_uid, is_liked,
        )
        return {"success": True, "likes": likes}

    # ---------------------------------------------------------------
    # Swap parties
    # ---------------------------------------------------------------

    async def get_swap_party_leaderboard(self, party_id: str, limit: int = 10) -> Dict[str, Any]:
        if not party_id:
            raise CallableError(ErrorKind.INVALID_ARGUMENT, "party_id is required")

        def run() -> Dict[str, Any]:
            entries = self.swap_parties.leaderboard(party_id, limit)
            return {
                "leaderboard": [
                    {"user_id": e.user_id, "count": e.count, "name": e.name, "image": e.image}
                    for e in entries
                ]
            }

        return await self._call("get swap party leaderboard", self.config.timeouts.default, run)

    async def get_active_swap_party_info(self) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            info = self.swap_parties.active_party_info()
            return {
                "has_active_party": info.has_active_party,
                "party": party_summary(info.party),
                "next_party": party_summary(info.next_party),
            }

        return await self._call("get swap party info", self.config.timeouts.default, run)

    def _scored_rows(self, matches: List[ScoredItem]) -> List[Dict[str, Any]]:
        return [product_row(m.entry, m.score) for m in matches]

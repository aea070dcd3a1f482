"""
Use case for the personalized "for you" feed.

Signals come from exactly one source, chosen in this order:
1. The AI-derived style profile, when its confidence is positive and it
   names at least one brand or size.
2. The preferences the user set by hand.
3. Nothing: the feed is empty and no query is issued.

An unfiltered feed is never substituted for a missing signal.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import or_, select

from seconde.database.document_store import DocumentStore
from seconde.database.models import SearchIndexRow, UserRow, row_to_index_entry, row_to_user
from seconde.domain.entities import SearchIndexEntry, UserProfile
from seconde.utils import get_logger
from seconde.utils.exceptions import InvalidInputError, ItemNotFoundError

logger = get_logger(__name__)

SOURCE_STYLE_PROFILE = "style_profile"
SOURCE_PREFERENCES = "preferences"


@dataclass
class FeedSignals:
    """Brands and sizes a feed is filtered by, and where they came from."""

    source: str
    brands: List[str] = field(default_factory=list)
    sizes: List[str] = field(default_factory=list)
    style_tags: List[str] = field(default_factory=list)


@dataclass
class FeedResult:
    """Feed items plus the signal used to pick them."""

    items: List[SearchIndexEntry]
    source: Optional[str] = None
    style_tags: List[str] = field(default_factory=list)

    @property
    def has_signal(self) -> bool:
        """False when the user gave nothing to personalize on."""
        return self.source is not None


def resolve_signals(user: UserProfile) -> Optional[FeedSignals]:
    """Pick the personalization signals for a user, or None."""
    profile = user.style_profile
    if profile is not None and profile.confidence > 0:
        brands = list(profile.recommended_brands)
        sizes = profile.sizes()
        if brands or sizes:
            return FeedSignals(
                source=SOURCE_STYLE_PROFILE,
                brands=brands,
                sizes=sizes,
                style_tags=list(profile.style_tags),
            )

    preferences = user.preferences
    if preferences is not None and (preferences.favorite_brands or preferences.sizes):
        return FeedSignals(
            source=SOURCE_PREFERENCES,
            brands=list(preferences.favorite_brands),
            sizes=list(preferences.sizes),
        )

    return None


class ComposeFeedUseCase:
    """
    Use case for composing a user's personalized feed.

    Queries listed index entries whose brand or size matches the chosen
    signals. The user's own listings are always excluded.
    """

    def __init__(self, documents: DocumentStore):
        """
        Initialize the use case.

        Args:
            documents: Document store holding users and the search index
        """
        self.documents = documents

    def execute(self, user_id: str, limit: int = 10) -> FeedResult:
        """
        Compose the feed for a user.

        Args:
            user_id: Requesting user
            limit: Maximum number of items

        Returns:
            FeedResult; ``has_signal`` is False when nothing was queried

        Raises:
            InvalidInputError: If user_id is empty or limit is not positive
            ItemNotFoundError: If the user does not exist
        """
        if not user_id:
            raise InvalidInputError("User id is required", field="user_id")
        if limit < 1:
            raise InvalidInputError("Limit must be positive", field="limit", value=limit)

        with self.documents.session() as session:
            row = session.get(UserRow, user_id)
            if row is None:
                raise ItemNotFoundError(f"User {user_id} not found", item_id=user_id)
            user = row_to_user(row)

            signals = resolve_signals(user)
            if signals is None:
                logger.debug(f"No personalization signal for {user_id}, empty feed")
                return FeedResult(items=[])

            conditions = []
            if signals.brands:
                conditions.append(SearchIndexRow.brand.in_(signals.brands))
            if signals.sizes:
                conditions.append(SearchIndexRow.size.in_(signals.sizes))

            rows = session.scalars(
                select(SearchIndexRow)
                .where(
                    SearchIndexRow.is_active.is_(True),
                    SearchIndexRow.is_sold.is_(False),
                    SearchIndexRow.pending_prune.is_(False),
                    SearchIndexRow.seller_id != user_id,
                    or_(*conditions),
                )
                .order_by(SearchIndexRow.created_at.desc())
                .limit(limit)
            ).all()
            items = [row_to_index_entry(r) for r in rows]

        logger.info(
            f"Feed for {user_id} from {signals.source}: {len(items)} items "
            f"(brands={signals.brands}, sizes={signals.sizes})"
        )
        return FeedResult(items=items, source=signals.source, style_tags=signals.style_tags)

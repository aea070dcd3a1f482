"""
Use case for promotional moments.

A moment is live when today's month-day falls in its window. Each live
moment is matched against the catalogue with its reference embedding;
moments without a single qualifying item are left out.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select

from seconde.core.matching.similarity_matcher import ScoredItem, SimilarityMatcher
from seconde.database.document_store import DocumentStore
from seconde.database.models import MomentRow, row_to_moment
from seconde.domain.entities import Moment
from seconde.utils import get_logger
from seconde.utils.config import SimilarityConfig
from seconde.utils.exceptions import DatabaseError, InvalidInputError, ItemNotFoundError

logger = get_logger(__name__)


@dataclass
class MomentMatches:
    """A live moment and its ranked items."""

    moment: Moment
    matches: List[ScoredItem]


class MomentsUseCase:
    """Active moment lookup and per-moment item matching."""

    def __init__(
        self,
        documents: DocumentStore,
        matcher: SimilarityMatcher,
        config: Optional[SimilarityConfig] = None,
    ):
        self.documents = documents
        self.matcher = matcher
        self.config = config or SimilarityConfig()

    def active_moments(self, now: datetime) -> List[Moment]:
        """Moments live at ``now``, highest priority first."""
        with self.documents.session() as session:
            rows = session.scalars(select(MomentRow).where(MomentRow.is_active.is_(True))).all()
            moments = [row_to_moment(row) for row in rows]

        live = [moment for moment in moments if moment.is_live(now)]
        live.sort(key=lambda moment: (-moment.priority, moment.id))
        return live

    def get_moment(self, moment_id: str) -> Moment:
        if not moment_id:
            raise InvalidInputError("Moment id is required", field="moment_id")

        with self.documents.session() as session:
            row = session.get(MomentRow, moment_id)
            if row is None:
                raise ItemNotFoundError(f"Moment {moment_id} not found", item_id=moment_id)
            return row_to_moment(row)

    def match_moment(
        self,
        moment_id: str,
        limit: Optional[int] = None,
        min_score: Optional[float] = None,
    ) -> MomentMatches:
        """
        Rank items against a moment's reference embedding.

        Raises:
            ItemNotFoundError: If the moment does not exist
            DatabaseError: If the moment has no reference embedding
        """
        moment = self.get_moment(moment_id)
        if not moment.embedding:
            raise DatabaseError(f"Moment {moment_id} has no embedding")

        matches = self.matcher.find_listed(
            moment.reference_vector,
            limit=self.config.moment_limit if limit is None else limit,
            min_score=self.config.moment_min_score if min_score is None else min_score,
        )
        return MomentMatches(moment=moment, matches=matches)

    def moments_with_products(
        self,
        now: datetime,
        limit: Optional[int] = None,
        min_score: Optional[float] = None,
    ) -> List[MomentMatches]:
        """Live moments with their items; moments matching nothing are dropped."""
        results = []
        for moment in self.active_moments(now):
            if not moment.embedding:
                logger.warning(f"Moment {moment.id} is live but has no embedding, skipping")
                continue
            matched = self.match_moment(moment.id, limit=limit, min_score=min_score)
            if matched.matches:
                results.append(matched)
            else:
                logger.debug(f"Moment {moment.id} matched no items, hidden")
        return results

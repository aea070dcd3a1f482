"""
Embedding similarity matcher.

Ranks stored item embeddings against a query vector by cosine similarity.
Candidates are pre-filtered in the embedding store (active, unsold, and
optionally category, brand or price range) before any vector math, then
scored exactly with numpy.

Ranking contract:
    - scores below ``min_score`` are dropped (the floor is inclusive)
    - sorted by descending score, ties broken by the most recent update
    - truncated to ``limit``, itself capped by ``max_results``

Results meant for callers go through ``find_listed``, which drops items
that left the search index before applying the limit.

When the source item of a "similar products" query has no active
embedding the matcher does not return an empty list. It returns a
NO_EMBEDDING result carrying recent items of the same category instead,
so callers can tell a degraded answer from "nothing similar".
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np
from PIL import Image
from sqlalchemy import select

from seconde.core.scoring.similarity import batch_cosine_similarity
from seconde.database.document_store import DocumentStore, chunked
from seconde.database.models import ItemRow, SearchIndexRow, row_to_index_entry
from seconde.domain.entities import SearchIndexEntry
from seconde.domain.interfaces import EmbeddingRepositoryInterface, EncoderInterface
from seconde.utils import get_logger, log_execution_time
from seconde.utils.config import SimilarityConfig
from seconde.utils.exceptions import (
    EmbeddingMismatchError,
    EncoderError,
    InvalidInputError,
    ItemNotFoundError,
)

logger = get_logger(__name__)

HYDRATE_CHUNK = 200


class SimilarityOutcome(str, Enum):
    MATCHED = "matched"
    NO_EMBEDDING = "no_embedding"


@dataclass
class ScoredItem:
    """One ranked match."""

    item_id: str
    score: float
    updated_at: datetime
    entry: Optional[SearchIndexEntry] = None


@dataclass
class SimilarityResult:
    """
    Answer to a "similar to this item" query.

    ``matches`` is filled when the source item has an embedding, even if
    nothing passed the score floor. ``fallback_items`` is filled only for
    NO_EMBEDDING outcomes.
    """

    outcome: SimilarityOutcome
    matches: List[ScoredItem] = field(default_factory=list)
    fallback_items: List[SearchIndexEntry] = field(default_factory=list)

    @property
    def fallback(self) -> bool:
        return self.outcome is SimilarityOutcome.NO_EMBEDDING


class SimilarityMatcher:
    """
    Nearest-neighbour search over item embeddings.

    Attributes:
        embeddings: Embedding store to scan.
        documents: Document store used for fallbacks and result details.
        config: Limits and score floors.
        encoder: Image encoder for query-by-photo (optional).
    """

    def __init__(
        self,
        embeddings: EmbeddingRepositoryInterface,
        documents: DocumentStore,
        config: Optional[SimilarityConfig] = None,
        encoder: Optional[EncoderInterface] = None,
    ):
        self.embeddings = embeddings
        self.documents = documents
        self.config = config or SimilarityConfig()
        self.encoder = encoder

    def find_similar(
        self,
        query_vector: np.ndarray,
        exclude_id: Optional[str] = None,
        limit: Optional[int] = None,
        min_score: Optional[float] = None,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[ScoredItem]:
        """
        Rank active embeddings against a query vector.

        Args:
            query_vector: Vector with the store's dimension.
            exclude_id: Item id left out of the results (the query item).
            limit: Maximum number of results.
            min_score: Inclusive similarity floor.
            filters: Equality pre-filters on category, brand, price_range.

        Returns:
            Ranked list of ScoredItem, possibly empty.

        Raises:
            EmbeddingMismatchError: If the query dimension differs from the store's.
            InvalidInputError: If limit is not positive.
        """
        limit = self._resolve_limit(limit, self.config.similar_limit)
        min_score = self.config.similar_min_score if min_score is None else min_score
        return self._rank(query_vector, exclude_id, min_score, filters)[:limit]

    def find_listed(
        self,
        query_vector: np.ndarray,
        exclude_id: Optional[str] = None,
        limit: Optional[int] = None,
        min_score: Optional[float] = None,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[ScoredItem]:
        """
        Like ``find_similar``, but only items still in the search index
        count towards ``limit`` and every match carries its index entry.
        """
        limit = self._resolve_limit(limit, self.config.similar_limit)
        min_score = self.config.similar_min_score if min_score is None else min_score
        return self.hydrate(self._rank(query_vector, exclude_id, min_score, filters), limit)

    def _rank(
        self,
        query_vector: np.ndarray,
        exclude_id: Optional[str],
        min_score: float,
        filters: Optional[Dict[str, Any]],
    ) -> List[ScoredItem]:
        """Every candidate at or above ``min_score``, best first."""
        query = np.asarray(query_vector, dtype=np.float32)
        expected = getattr(self.embeddings, "embedding_dim", None)
        if query.ndim != 1 or (expected is not None and query.shape[0] != expected):
            raise EmbeddingMismatchError(
                f"Query embedding has shape {query.shape}, expected ({expected},)",
                expected=expected,
                actual=query.shape[0] if query.ndim == 1 else None,
            )

        with log_execution_time(logger, "similarity scan"):
            candidates = [
                record for record in self.embeddings.candidates(filters)
                if record.item_id != exclude_id
            ]
            if not candidates:
                return []

            matrix = np.stack([record.vector for record in candidates])
            scores = batch_cosine_similarity(query, matrix)

        matches = [
            ScoredItem(item_id=record.item_id, score=float(score), updated_at=record.updated_at)
            for record, score in zip(candidates, scores)
            if score >= min_score
        ]
        matches.sort(key=lambda match: (-match.score, -match.updated_at.timestamp()))

        logger.debug(f"{len(matches)}/{len(candidates)} candidates above {min_score:.2f}")
        return matches

    def similar_to_item(
        self,
        item_id: str,
        limit: Optional[int] = None,
        min_score: Optional[float] = None,
    ) -> SimilarityResult:
        """
        Items visually similar to an existing item.

        Raises:
            InvalidInputError: If item_id is empty.
            ItemNotFoundError: If the item has neither an embedding nor a record.
        """
        if not item_id:
            raise InvalidInputError("Item id is required", field="item_id")

        record = self.embeddings.get(item_id)
        if record is None or not record.is_active:
            logger.info(f"No active embedding for {item_id}, using category fallback")
            return SimilarityResult(
                outcome=SimilarityOutcome.NO_EMBEDDING,
                fallback_items=self.category_fallback(item_id),
            )

        # Same category only, as the embedding already carries it
        filters = {"category": record.category} if record.category else None
        matches = self.find_listed(
            record.vector,
            exclude_id=item_id,
            limit=limit,
            min_score=min_score,
            filters=filters,
        )
        return SimilarityResult(outcome=SimilarityOutcome.MATCHED, matches=matches)

    def visual_search(
        self,
        image_vector: Optional[np.ndarray] = None,
        image: Optional[Image.Image] = None,
        limit: Optional[int] = None,
        min_score: Optional[float] = None,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[ScoredItem]:
        """
        Rank items against an uploaded photo or its precomputed vector.

        There is no fallback here: the query always has a vector.

        Raises:
            InvalidInputError: If neither a vector nor an image is given.
            EncoderError: If an image is given but no encoder is configured.
        """
        if image_vector is None:
            if image is None:
                raise InvalidInputError("An image or an image vector is required", field="image")
            if self.encoder is None:
                raise EncoderError("No image encoder configured for visual search")
            image_vector = self.encoder.encode(image)

        return self.find_listed(
            image_vector,
            limit=self._resolve_limit(limit, self.config.visual_limit),
            min_score=self.config.visual_min_score if min_score is None else min_score,
            filters=filters,
        )

    def category_fallback(self, item_id: str) -> List[SearchIndexEntry]:
        """Most recent listed items sharing the item's category."""
        with self.documents.session() as session:
            item = session.get(ItemRow, item_id)
            if item is None:
                raise ItemNotFoundError(f"Item {item_id} not found", item_id=item_id)
            if not item.category:
                return []

            rows = session.scalars(
                select(SearchIndexRow)
                .where(
                    SearchIndexRow.category == item.category,
                    SearchIndexRow.is_active.is_(True),
                    SearchIndexRow.is_sold.is_(False),
                    SearchIndexRow.pending_prune.is_(False),
                    SearchIndexRow.id != item_id,
                )
                .order_by(SearchIndexRow.created_at.desc())
                .limit(self.config.fallback_limit)
            ).all()
            return [row_to_index_entry(row) for row in rows]

    def hydrate(self, matches: List[ScoredItem], limit: Optional[int] = None) -> List[ScoredItem]:
        """
        Attach index entries to matches, dropping items no longer indexed.

        Ranking order is preserved. With ``limit`` the ranking is read in
        chunks until that many indexed matches are found.
        """
        hydrated: List[ScoredItem] = []
        if not matches:
            return hydrated

        with self.documents.session() as session:
            for chunk in chunked(matches, HYDRATE_CHUNK):
                rows = session.scalars(
                    select(SearchIndexRow).where(SearchIndexRow.id.in_([m.item_id for m in chunk]))
                ).all()
                entries = {row.id: row_to_index_entry(row) for row in rows}

                for match in chunk:
                    entry = entries.get(match.item_id)
                    if entry is None or entry.pending_prune:
                        continue
                    match.entry = entry
                    hydrated.append(match)
                    if limit is not None and len(hydrated) >= limit:
                        return hydrated
        return hydrated

    def _resolve_limit(self, limit: Optional[int], default: int) -> int:
        if limit is None:
            limit = default
        if limit < 1:
            raise InvalidInputError("Limit must be positive", field="limit", value=limit)
        return min(limit, self.config.max_results)

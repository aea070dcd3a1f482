"""Vector similarity matching."""

from seconde.core.matching.similarity_matcher import (
    ScoredItem,
    SimilarityMatcher,
    SimilarityOutcome,
    SimilarityResult,
)

__all__ = ["ScoredItem", "SimilarityMatcher", "SimilarityOutcome", "SimilarityResult"]

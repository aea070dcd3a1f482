"""
Scoring functions: vector similarity and popularity decay.
"""

from seconde.core.scoring.popularity import PopularityScorer, age_in_days, popularity_score
from seconde.core.scoring.similarity import (
    batch_cosine_similarity,
    to_percentage,
)

__all__ = [
    "PopularityScorer",
    "age_in_days",
    "popularity_score",
    "batch_cosine_similarity",
    "to_percentage",
]

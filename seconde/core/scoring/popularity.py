"""
Popularity score: engagement weighted by an exponential recency decay.

    score = (views * view_weight + likes * like_weight) * exp(-age_days / decay_days)

The score is a pure function of its inputs and is never stored as truth;
the maintenance job recomputes it and rewrites it only when it moved by
more than ``persist_epsilon``.

Example:
    >>> from seconde.core.scoring import PopularityScorer
    >>> scorer = PopularityScorer()
    >>> scorer.score(views=100, likes=20, created_at=created, now=now)
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from seconde.utils.config import PopularityConfig
from seconde.utils.logger import get_logger

logger = get_logger(__name__)

SECONDS_PER_DAY = 86400.0


def age_in_days(created_at: datetime, now: datetime) -> float:
    """Age in days, clamped at zero for timestamps in the future."""
    return max(0.0, (now - created_at).total_seconds() / SECONDS_PER_DAY)


def popularity_score(
    views: int,
    likes: int,
    created_at: datetime,
    now: datetime,
    weights: Optional[PopularityConfig] = None,
) -> float:
    """
    Compute the decaying popularity score of an item.

    Non-decreasing in views and likes, non-increasing in age, never
    negative, and tends to zero as age grows.

    Args:
        views: View counter (negative values count as zero).
        likes: Like counter (negative values count as zero).
        created_at: Creation time of the item.
        now: Reference time.
        weights: Scoring constants (defaults from PopularityConfig).

    Returns:
        Non-negative popularity score.
    """
    weights = weights or PopularityConfig()

    engagement = max(0, views) * weights.view_weight + max(0, likes) * weights.like_weight
    decay = math.exp(-age_in_days(created_at, now) / weights.decay_days)

    return engagement * decay


class PopularityScorer:
    """
    Popularity scoring bound to one set of weights.

    Attributes:
        weights: Scoring constants in use.
    """

    def __init__(self, weights: Optional[PopularityConfig] = None):
        self.weights = weights or PopularityConfig()
        logger.debug(
            f"PopularityScorer initialized: views={self.weights.view_weight}, "
            f"likes={self.weights.like_weight}, decay={self.weights.decay_days}d"
        )

    def score(self, views: int, likes: int, created_at: datetime, now: datetime) -> float:
        return popularity_score(views, likes, created_at, now, self.weights)

    def needs_update(self, current: Optional[float], recomputed: float) -> bool:
        """Whether the stored score drifted past the persist epsilon."""
        return abs(recomputed - (current or 0.0)) > self.weights.persist_epsilon

    def __repr__(self) -> str:
        return (
            f"PopularityScorer(view_weight={self.weights.view_weight}, "
            f"like_weight={self.weights.like_weight}, "
            f"decay_days={self.weights.decay_days})"
        )

"""
Moment entity: a recurring promotional theme matched to items by image
similarity.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

import numpy as np

_MONTH_DAY = re.compile(r"^(0[1-9]|1[0-2])-(0[1-9]|[12][0-9]|3[01])$")


def month_day(moment: datetime) -> str:
    """Format a datetime as ``MM-DD``."""
    return f"{moment.month:02d}-{moment.day:02d}"


@dataclass
class Moment:
    """
    A promotional window recurring every year.

    ``start`` and ``end`` are ``MM-DD`` strings. The window covers every
    instant from the start of ``start`` to the end of ``end``; a window whose
    start sorts after its end wraps around the new year (``12-20`` to ``01-07``).
    """

    id: str
    name: str
    start: str
    end: str
    priority: int = 0
    emoji: str = ""
    embedding: List[float] = field(default_factory=list)
    is_active: bool = True

    def __post_init__(self) -> None:
        for label, value in (("start", self.start), ("end", self.end)):
            if not _MONTH_DAY.match(value):
                raise ValueError(f"Moment {label} must be MM-DD, got {value!r}")

    def is_live(self, now: datetime) -> bool:
        """Whether ``now`` falls inside this moment's window."""
        if not self.is_active:
            return False

        today = month_day(now)
        if self.start <= self.end:
            return self.start <= today <= self.end
        # Wraps around year end
        return today >= self.start or today <= self.end

    @property
    def reference_vector(self) -> np.ndarray:
        return np.asarray(self.embedding, dtype=np.float32)

    def summary(self) -> dict:
        """Public fields shown alongside matched products."""
        return {"id": self.id, "name": self.name, "emoji": self.emoji, "priority": self.priority}

"""
Embedding record stored for each item with an image.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import numpy as np

from seconde.domain.entities.item import utcnow

# Price buckets denormalized onto embedding records for pre-filtering
LOW_PRICE_CEILING = 20.0
MEDIUM_PRICE_CEILING = 100.0


def price_range(price: float) -> str:
    """Bucket a price into ``low``, ``medium`` or ``high``."""
    if price < LOW_PRICE_CEILING:
        return "low"
    if price <= MEDIUM_PRICE_CEILING:
        return "medium"
    return "high"


@dataclass
class EmbeddingRecord:
    """
    The single embedding kept for an item.

    Keyed by item id, so storing a new record for the same item replaces
    the previous one instead of adding a second active vector.
    """

    item_id: str
    vector: np.ndarray
    image_url: str
    category: Optional[str] = None
    brand: Optional[str] = None
    price_range: str = "medium"
    is_active: bool = True
    is_sold: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        """Coerce the vector to a 1D float32 array."""
        vector = np.asarray(self.vector, dtype=np.float32)
        if vector.ndim != 1:
            raise ValueError(f"Embedding must be 1D, got shape {vector.shape}")
        self.vector = vector

    @property
    def dimension(self) -> int:
        return int(self.vector.shape[0])

    def to_list(self) -> List[float]:
        """Convert embedding vector to list."""
        return self.vector.tolist()

"""
Item entity representing a product listed by a seller, and its
denormalized search index projection.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, NamedTuple, Optional


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


class GeoPoint(NamedTuple):
    """A latitude/longitude pair in degrees."""

    lat: float
    lon: float


@dataclass
class Item:
    """A listed product. Soft-deleted through ``is_active`` or ``is_sold``."""

    id: str
    title: str
    price: float
    seller_id: str
    condition: str = "good"
    category: Optional[str] = None
    brand: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    description: str = ""
    images: List[str] = field(default_factory=list)
    is_active: bool = True
    is_sold: bool = False
    moderation_status: str = "approved"
    views: int = 0
    likes: int = 0
    liked_by: List[str] = field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        """Validate required fields after initialization."""
        if not self.id:
            raise ValueError("Item id cannot be empty")
        if not self.title:
            raise ValueError("Item title cannot be empty")
        if self.price < 0:
            raise ValueError("Item price cannot be negative")
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Item latitude and longitude must be set together")

    @property
    def primary_image(self) -> Optional[str]:
        """First image of the ordered list, if any."""
        return self.images[0] if self.images else None

    @property
    def coordinates(self) -> Optional[GeoPoint]:
        """Location of the item, if the seller shared one."""
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(self.latitude, self.longitude)

    @property
    def is_approved(self) -> bool:
        return self.moderation_status == "approved"

    @property
    def is_listed(self) -> bool:
        """True when the item belongs in discovery results."""
        return self.is_active and not self.is_sold and self.is_approved


@dataclass
class SearchIndexEntry:
    """Read-optimized projection of an Item plus derived ranking fields."""

    id: str
    title: str
    title_lowercase: str
    price: float
    seller_id: str
    condition: str
    category: Optional[str] = None
    brand: Optional[str] = None
    size: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    first_image: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: str = ""
    geohash: str = ""
    is_active: bool = True
    is_sold: bool = False
    views: int = 0
    likes: int = 0
    created_at: datetime = field(default_factory=utcnow)
    popularity_score: float = 0.0
    last_indexed: datetime = field(default_factory=utcnow)
    pending_prune: bool = False

    @property
    def coordinates(self) -> Optional[GeoPoint]:
        """Location mirrored from the item."""
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(self.latitude, self.longitude)

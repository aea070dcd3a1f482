"""
Projection of an Item onto its search index entry.

Kept free of any storage concern so the mirrored fields and derived
ranking fields can be checked in isolation.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from seconde.core.geo import encode_geohash
from seconde.core.indexing.keywords import generate_search_keywords, search_text
from seconde.core.scoring.popularity import popularity_score
from seconde.domain.entities import Item, SearchIndexEntry
from seconde.utils.config import PopularityConfig

# Fields copied verbatim from the item, compared in consistency checks
MIRRORED_FIELDS = ("views", "likes", "is_active", "is_sold")


def project_item(
    item: Item,
    now: datetime,
    weights: Optional[PopularityConfig] = None,
    geohash_precision: int = 7,
) -> Dict[str, Any]:
    """
    Build the index entry columns for an item.

    Items that should not appear in discovery (inactive, sold, or not
    approved by moderation) are flagged ``pending_prune`` and removed by
    the pruning job.

    Args:
        item: Source item, as written.
        now: Indexing time, also used for the popularity score.
        weights: Popularity constants.
        geohash_precision: Length of the stored geohash.

    Returns:
        Column values for a SearchIndexRow.
    """
    geohash = ""
    if item.coordinates is not None:
        geohash = encode_geohash(item.latitude, item.longitude, geohash_precision)

    keywords = generate_search_keywords(
        search_text((item.title, item.description, item.brand, item.category))
    )

    return {
        "id": item.id,
        "title": item.title,
        "title_lowercase": item.title.lower(),
        "price": item.price,
        "seller_id": item.seller_id,
        "condition": item.condition,
        "category": item.category,
        "brand": item.brand,
        "size": item.size,
        "keywords": keywords,
        "first_image": item.primary_image,
        "latitude": item.latitude,
        "longitude": item.longitude,
        "city": item.city,
        "geohash": geohash,
        "is_active": item.is_active,
        "is_sold": item.is_sold,
        "views": item.views,
        "likes": item.likes,
        "created_at": item.created_at,
        "popularity_score": popularity_score(item.views, item.likes, item.created_at, now, weights),
        "last_indexed": now,
        "pending_prune": not item.is_listed,
    }


def mirrored_fields_match(item: Item, entry: SearchIndexEntry) -> bool:
    """Whether an index entry agrees with its item on every mirrored field."""
    return all(getattr(item, name) == getattr(entry, name) for name in MIRRORED_FIELDS)

"""Use case for items listed close to a location."""

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select

from seconde.core.geo import within_radius
from seconde.database.document_store import DocumentStore
from seconde.database.models import SearchIndexRow, row_to_index_entry
from seconde.domain.entities import GeoPoint, SearchIndexEntry
from seconde.utils import get_logger
from seconde.utils.config import GeoConfig
from seconde.utils.exceptions import InvalidInputError

logger = get_logger(__name__)


@dataclass
class NearbyItem:
    entry: SearchIndexEntry
    distance_km: float


class NearbyItemsUseCase:
    """
    Recent listed items within a radius, nearest first.

    Only the most recent ``scan_limit`` located entries are considered.
    """

    def __init__(self, documents: DocumentStore, config: Optional[GeoConfig] = None):
        self.documents = documents
        self.config = config or GeoConfig()

    def execute(
        self,
        center: GeoPoint,
        max_distance_km: Optional[float] = None,
        limit: int = 10,
        exclude_user_id: Optional[str] = None,
    ) -> List[NearbyItem]:
        """
        Find items around ``center``.

        Raises:
            InvalidInputError: For out-of-range coordinates, radius or limit
        """
        lat, lon = center
        if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
            raise InvalidInputError("Coordinates out of range", field="center", value=center)
        if max_distance_km is None:
            max_distance_km = self.config.default_max_distance_km
        if max_distance_km <= 0:
            raise InvalidInputError("Radius must be positive", field="max_distance_km", value=max_distance_km)
        if limit < 1:
            raise InvalidInputError("Limit must be positive", field="limit", value=limit)

        query = (
            select(SearchIndexRow)
            .where(
                SearchIndexRow.is_active.is_(True),
                SearchIndexRow.is_sold.is_(False),
                SearchIndexRow.pending_prune.is_(False),
                SearchIndexRow.latitude.is_not(None),
                SearchIndexRow.longitude.is_not(None),
            )
            .order_by(SearchIndexRow.created_at.desc())
            .limit(self.config.scan_limit)
        )
        if exclude_user_id:
            query = query.where(SearchIndexRow.seller_id != exclude_user_id)

        with self.documents.session() as session:
            entries = [row_to_index_entry(row) for row in session.scalars(query).all()]

        kept = within_radius(
            GeoPoint(lat, lon),
            ((entry, entry.coordinates) for entry in entries),
            max_distance_km,
        )
        logger.debug(f"{len(kept)}/{len(entries)} items within {max_distance_km} km of ({lat}, {lon})")
        return [NearbyItem(entry=entry, distance_km=distance) for entry, distance in kept[:limit]]

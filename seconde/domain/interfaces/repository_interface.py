"""
Abstract interface for the embedding repository.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from seconde.domain.entities.embedding import EmbeddingRecord


class EmbeddingRepositoryInterface(ABC):
    """
    Abstract base class for embedding storage.

    Records are keyed by item id: ``upsert`` replaces any previous record
    for the same item, which keeps at most one active vector per item.
    """

    @abstractmethod
    def upsert(self, record: EmbeddingRecord) -> None:
        """
        Store or replace the embedding for ``record.item_id``.

        Args:
            record: The embedding record to store.
        """
        pass

    @abstractmethod
    def get(self, item_id: str) -> Optional[EmbeddingRecord]:
        """
        Retrieve the embedding stored for an item.

        Args:
            item_id: The item identifier.

        Returns:
            The EmbeddingRecord if found, None otherwise.
        """
        pass

    @abstractmethod
    def update_metadata(self, item_id: str, **fields: Any) -> bool:
        """
        Update denormalized fields without touching the vector.

        Returns:
            True if updated, False if no record exists.
        """
        pass

    @abstractmethod
    def deactivate(
        self, item_id: str, is_sold: Optional[bool] = None, updated_at: Optional[datetime] = None
    ) -> bool:
        """Flag the record inactive; False when no record exists."""
        pass

    @abstractmethod
    def candidates(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page_size: Optional[int] = None,
    ) -> List[EmbeddingRecord]:
        """
        Return every active, unsold record matching the equality filters.

        Args:
            filters: Optional equality filters on category, brand, price_range.
            page_size: Records read from the backend per round trip.

        Returns:
            List of EmbeddingRecord.
        """
        pass

    @abstractmethod
    def delete(self, item_ids: List[str]) -> int:
        """Delete records by item id and return how many existed."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Return the total number of stored records."""
        pass

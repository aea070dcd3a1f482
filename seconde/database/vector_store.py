"""ChromaDB-backed embedding store.

One record per item id. Vectors live in a single cosine-space collection;
the denormalized fields used for pre-filtering (category, brand, price
range, active and sold flags) live in the record metadata.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import chromadb
import numpy as np
from chromadb.config import Settings

from seconde.domain.entities.embedding import EmbeddingRecord
from seconde.domain.entities.item import utcnow
from seconde.domain.interfaces.repository_interface import EmbeddingRepositoryInterface
from seconde.utils import get_logger, log_exception
from seconde.utils.config import VectorStoreConfig
from seconde.utils.exceptions import (
    CollectionError,
    DatabaseError,
    EmbeddingMismatchError,
)

logger = get_logger(__name__)

# Metadata keys callers may pre-filter on
FILTERABLE_FIELDS = ("category", "brand", "price_range")


def record_to_metadata(record: EmbeddingRecord) -> dict:
    """Extract metadata dict for ChromaDB storage (excluding the vector).

    chromadb refuses None values, so empty optionals are stored as "".
    """
    return {
        "image_url": record.image_url,
        "category": record.category or "",
        "brand": record.brand or "",
        "price_range": record.price_range,
        "is_active": bool(record.is_active),
        "is_sold": bool(record.is_sold),
        "created_at": record.created_at.timestamp(),
        "updated_at": record.updated_at.timestamp(),
    }


def metadata_to_record(item_id: str, metadata: dict, vector) -> EmbeddingRecord:
    """Reconstruct an EmbeddingRecord from ChromaDB metadata and vector."""
    now = utcnow().timestamp()
    return EmbeddingRecord(
        item_id=item_id,
        vector=np.asarray(vector, dtype=np.float32),
        image_url=metadata.get("image_url", ""),
        category=metadata.get("category") or None,
        brand=metadata.get("brand") or None,
        price_range=metadata.get("price_range", "medium"),
        is_active=bool(metadata.get("is_active", True)),
        is_sold=bool(metadata.get("is_sold", False)),
        created_at=datetime.fromtimestamp(float(metadata.get("created_at", now)), tz=timezone.utc),
        updated_at=datetime.fromtimestamp(float(metadata.get("updated_at", now)), tz=timezone.utc),
    )


def _column(data: dict, key: str) -> list:
    """Result column from a chromadb ``get``; numpy arrays have no truth value."""
    value = data.get(key)
    if value is None:
        return []
    return list(value)


def build_where(conditions: Dict[str, Any]) -> Optional[dict]:
    """Build a chromadb where clause from equality conditions."""
    clauses = [{key: {"$eq": value}} for key, value in conditions.items()]
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class EmbeddingStore(EmbeddingRepositoryInterface):
    """Embedding records keyed by item id in a chromadb collection."""

    def __init__(self, config: VectorStoreConfig, client: Optional[Any] = None):
        """Initialize the store and its collection.

        Args:
            config: Vector store configuration
            client: Existing chromadb client to reuse (built from config if None)
        """
        self.config = config
        self.embedding_dim = config.embedding_dim

        try:
            if client is not None:
                self.client = client
            elif config.persist_directory:
                persist_dir = Path(config.persist_directory)
                persist_dir.mkdir(parents=True, exist_ok=True)
                self.client = chromadb.PersistentClient(
                    path=str(persist_dir),
                    settings=Settings(anonymized_telemetry=False, allow_reset=True),
                )
            else:
                self.client = chromadb.EphemeralClient(
                    settings=Settings(anonymized_telemetry=False, allow_reset=True),
                )

            self.collection = self.client.get_or_create_collection(
                name=config.collection_name,
                metadata={"hnsw:space": config.distance_metric},
            )
            logger.info(
                f"Embedding collection {config.collection_name} ready "
                f"({self.collection.count()} records, dim={self.embedding_dim})"
            )
        except Exception as e:
            raise CollectionError(
                f"Failed to create/access embedding collection: {e}",
                collection_name=config.collection_name,
            ) from e

    def upsert(self, record: EmbeddingRecord) -> None:
        """Store or replace the embedding for an item.

        Raises:
            EmbeddingMismatchError: If the vector dimension is wrong
        """
        self._validate_vector(record.vector)

        existing = self.get(record.item_id)
        if existing is not None:
            # Keep the original creation time across regenerations
            record.created_at = existing.created_at

        try:
            self.collection.upsert(
                ids=[record.item_id],
                embeddings=[record.to_list()],
                metadatas=[record_to_metadata(record)],
            )
        except Exception as e:
            log_exception(logger, f"upsert embedding {record.item_id}", e)
            raise DatabaseError(f"Failed to store embedding: {e}") from e

        logger.debug(f"Stored embedding for {record.item_id} ({record.dimension} dims)")

    def get(self, item_id: str) -> Optional[EmbeddingRecord]:
        """Retrieve the embedding stored for an item, active or not."""
        try:
            data = self.collection.get(ids=[item_id], include=["embeddings", "metadatas"])
        except Exception as e:
            log_exception(logger, f"get embedding {item_id}", e)
            raise DatabaseError(f"Failed to read embedding: {e}") from e

        ids = _column(data, "ids")
        if not ids:
            return None
        return metadata_to_record(ids[0], _column(data, "metadatas")[0], _column(data, "embeddings")[0])

    def update_metadata(self, item_id: str, **fields: Any) -> bool:
        """Update denormalized fields without touching the vector.

        Returns:
            True if updated, False if no record exists
        """
        record = self.get(item_id)
        if record is None:
            return False

        for key, value in fields.items():
            if not hasattr(record, key) or key in ("item_id", "vector", "created_at"):
                raise ValueError(f"Unknown or read-only embedding field: {key}")
            setattr(record, key, value)
        record.updated_at = fields.get("updated_at", utcnow())

        self.collection.update(ids=[item_id], metadatas=[record_to_metadata(record)])
        logger.debug(f"Updated embedding metadata for {item_id}: {sorted(fields)}")
        return True

    def deactivate(
        self, item_id: str, is_sold: Optional[bool] = None, updated_at: Optional[datetime] = None
    ) -> bool:
        """Flag an item's embedding inactive so it drops out of matching."""
        fields: Dict[str, Any] = {"is_active": False}
        if is_sold is not None:
            fields["is_sold"] = is_sold
        if updated_at is not None:
            fields["updated_at"] = updated_at
        return self.update_metadata(item_id, **fields)

    def candidates(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page_size: Optional[int] = None,
    ) -> List[EmbeddingRecord]:
        """Return every active, unsold record matching the equality filters.

        The collection is read page by page until the filtered set is exhausted.

        Args:
            filters: Optional equality filters on category, brand, price_range
            page_size: Records fetched per read (config.scan_page_size if None)

        Returns:
            List of EmbeddingRecord
        """
        conditions: Dict[str, Any] = {"is_active": True, "is_sold": False}
        for key, value in (filters or {}).items():
            if key not in FILTERABLE_FIELDS:
                raise ValueError(f"Cannot pre-filter embeddings on {key!r}")
            if value:
                conditions[key] = value

        where = build_where(conditions)
        page_size = page_size or self.config.scan_page_size
        records: List[EmbeddingRecord] = []

        while True:
            try:
                data = self.collection.get(
                    where=where,
                    limit=page_size,
                    offset=len(records),
                    include=["embeddings", "metadatas"],
                )
            except Exception as e:
                log_exception(logger, "scan embedding candidates", e)
                raise DatabaseError(f"Failed to scan embeddings: {e}") from e

            ids = _column(data, "ids")
            metadatas = _column(data, "metadatas")
            embeddings = _column(data, "embeddings")
            records.extend(
                metadata_to_record(item_id, metadatas[i], embeddings[i])
                for i, item_id in enumerate(ids)
            )
            if len(ids) < page_size:
                return records

    def delete(self, item_ids: List[str]) -> int:
        """Delete records by item id and return how many existed."""
        if not item_ids:
            return 0

        existing = _column(self.collection.get(ids=item_ids, include=[]), "ids")
        if existing:
            self.collection.delete(ids=existing)
        logger.info(f"Deleted {len(existing)} embeddings")
        return len(existing)

    def count(self) -> int:
        """Get total number of stored records."""
        return self.collection.count()

    def _validate_vector(self, vector: np.ndarray) -> None:
        if vector.shape != (self.embedding_dim,):
            raise EmbeddingMismatchError(
                f"Embedding shape mismatch: expected ({self.embedding_dim},), got {vector.shape}",
                expected=self.embedding_dim,
                actual=vector.shape[0] if vector.ndim == 1 else None,
            )

"""Embedding generation driven by item change events.

Item writes are turned into events by ``diff_item_images``; the pipeline
consumes them one at a time:

    ItemImagesChanged   -> encode the primary image and replace the record
    ItemMetadataChanged -> refresh the denormalized filter fields only
    ItemDeactivated     -> flag the record inactive

Replacing a record is a single upsert keyed by item id, so an item never
has two active embeddings.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from PIL import Image
from pydantic import BaseModel, Field
from tqdm import tqdm

from seconde.database.document_store import DocumentStore
from seconde.database.models import ItemRow, row_to_item
from seconde.domain.entities import EmbeddingRecord, Item
from seconde.domain.entities.embedding import price_range
from seconde.domain.entities.item import utcnow
from seconde.domain.interfaces import EmbeddingRepositoryInterface, EncoderInterface
from seconde.utils import get_logger, log_exception
from seconde.utils.exceptions import ItemNotFoundError
from seconde.utils.image_utils import load_image

logger = get_logger(__name__)

ImageLoader = Callable[[str], Image.Image]


@dataclass(frozen=True)
class ItemImagesChanged:
    item_id: str
    force_regenerate: bool = False


@dataclass(frozen=True)
class ItemMetadataChanged:
    item_id: str


@dataclass(frozen=True)
class ItemDeactivated:
    item_id: str
    is_sold: bool = False


ItemEvent = Union[ItemImagesChanged, ItemMetadataChanged, ItemDeactivated]


def diff_item_images(before: Optional[Item], after: Optional[Item]) -> Optional[ItemEvent]:
    """
    Event implied by an item write, or None if embeddings are unaffected.

    Leaving discovery wins over everything else. A new primary image
    triggers regeneration; a change to category, brand, price bucket or
    listing state (active, sold, moderation) only refreshes metadata.
    """
    if after is None:
        return ItemDeactivated(before.id) if before is not None else None

    if before is not None and before.is_listed and not after.is_listed:
        return ItemDeactivated(after.id, is_sold=after.is_sold)

    before_image = before.primary_image if before is not None else None
    if after.primary_image and after.primary_image != before_image:
        return ItemImagesChanged(after.id)

    if before is not None and (
        before.category != after.category
        or before.brand != after.brand
        or price_range(before.price) != price_range(after.price)
        or before.is_active != after.is_active
        or before.is_sold != after.is_sold
        or before.moderation_status != after.moderation_status
    ):
        return ItemMetadataChanged(after.id)

    return None


def matchable(item: Item) -> bool:
    """Whether the item's embedding may take part in matching.

    Sold items keep ``is_active`` and are filtered on ``is_sold`` instead.
    """
    return item.is_active and item.is_approved


class BackfillStats(BaseModel):
    """Statistics for a bulk regeneration run."""

    total_items: int = Field(..., ge=0, description="Listed items considered")
    processed_items: int = Field(..., ge=0, description="Embeddings written")
    skipped_items: int = Field(..., ge=0, description="Already embedded or without image")
    failed_items: int = Field(..., ge=0, description="Errors during processing")
    failed_ids: List[str] = Field(default_factory=list, description="IDs of failed items")
    duration_seconds: float = Field(..., ge=0.0, description="Total processing time")


class EmbeddingPipeline:
    """Consumer of item events that keeps embedding records current."""

    def __init__(
        self,
        embeddings: EmbeddingRepositoryInterface,
        documents: DocumentStore,
        encoder: EncoderInterface,
        image_loader: ImageLoader = load_image,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the pipeline.

        Args:
            embeddings: Embedding store to write to
            documents: Document store holding the items
            encoder: Image encoder, built once per process
            image_loader: Resolves an image reference to a PIL image
            clock: Source of the current time
        """
        self.embeddings = embeddings
        self.documents = documents
        self.encoder = encoder
        self.image_loader = image_loader
        self.clock = clock

    def handle(self, event: ItemEvent) -> str:
        """Process one event and return the action taken.

        Returns:
            One of "regenerated", "metadata_refreshed", "deactivated", "skipped"

        Raises:
            ItemNotFoundError: If the event names an unknown item
            EncoderError: If the image cannot be encoded
        """
        if isinstance(event, ItemDeactivated):
            if self.embeddings.deactivate(event.item_id, is_sold=event.is_sold, updated_at=self.clock()):
                logger.info(f"Deactivated embedding for {event.item_id}")
                return "deactivated"
            return "skipped"

        item = self._load_item(event.item_id)
        current = self.embeddings.get(item.id)

        if isinstance(event, ItemImagesChanged):
            stale = current is None or current.image_url != item.primary_image
            if event.force_regenerate or stale:
                return self.regenerate(item)

        if current is None:
            # Metadata can only be refreshed on an existing record
            return self.regenerate(item)

        self.embeddings.update_metadata(
            item.id,
            category=item.category,
            brand=item.brand,
            price_range=price_range(item.price),
            is_active=matchable(item),
            is_sold=item.is_sold,
            updated_at=self.clock(),
        )
        logger.debug(f"Refreshed embedding metadata for {item.id}")
        return "metadata_refreshed"

    def regenerate(self, item: Item) -> str:
        """Encode the primary image of an item and replace its record."""
        if not item.primary_image:
            logger.info(f"No image for item {item.id}, skipping embedding")
            return "skipped"

        image = self.image_loader(item.primary_image)
        vector = self.encoder.encode(image)
        now = self.clock()

        self.embeddings.upsert(EmbeddingRecord(
            item_id=item.id,
            vector=vector,
            image_url=item.primary_image,
            category=item.category,
            brand=item.brand,
            price_range=price_range(item.price),
            is_active=matchable(item),
            is_sold=item.is_sold,
            created_at=now,
            updated_at=now,
        ))
        logger.info(f"Generated embedding for {item.id} with {self.encoder.model_name}")
        return "regenerated"

    def backfill(self, item_ids: Optional[Iterable[str]] = None, force: bool = False) -> BackfillStats:
        """Embed every listed item that has no embedding yet.

        Per-item failures are logged and counted; the run continues.

        Args:
            item_ids: Restrict the run to these items (all listed items if None)
            force: Regenerate even when an embedding exists
        """
        start_time = time.time()

        with self.documents.session() as session:
            query = session.query(ItemRow).filter(ItemRow.is_active.is_(True), ItemRow.is_sold.is_(False))
            if item_ids is not None:
                query = query.filter(ItemRow.id.in_(list(item_ids)))
            items = [row_to_item(row) for row in query.all()]

        processed, skipped, failed_ids = 0, 0, []
        for item in tqdm(items, desc="Embedding items", unit="item", disable=len(items) < 2):
            try:
                if not force and self.embeddings.get(item.id) is not None:
                    skipped += 1
                    continue
                if self.regenerate(item) == "regenerated":
                    processed += 1
                else:
                    skipped += 1
            except Exception as e:
                log_exception(logger, f"embed item {item.id}", e)
                failed_ids.append(item.id)

        stats = BackfillStats(
            total_items=len(items),
            processed_items=processed,
            skipped_items=skipped,
            failed_items=len(failed_ids),
            failed_ids=failed_ids,
            duration_seconds=time.time() - start_time,
        )
        logger.info(
            f"Backfill complete: {processed} embedded, {skipped} skipped, "
            f"{len(failed_ids)} failed in {stats.duration_seconds:.1f}s"
        )
        return stats

    def _load_item(self, item_id: str) -> Item:
        with self.documents.session() as session:
            row = session.get(ItemRow, item_id)
            if row is None:
                raise ItemNotFoundError(f"Item {item_id} not found", item_id=item_id)
            return row_to_item(row)


def load_local_image(root: Path) -> ImageLoader:
    """Image loader resolving references relative to a media directory."""

    def loader(reference: str) -> Image.Image:
        return load_image(root / reference)

    return loader

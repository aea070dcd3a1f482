"""Reaction to item writes: reindexing, then embedding upkeep."""

from typing import Optional

from seconde.core.embedding_pipeline import EmbeddingPipeline, ItemEvent, diff_item_images
from seconde.core.indexing.maintainer import IndexMaintainer
from seconde.domain.entities import Item
from seconde.utils import get_logger, log_exception

logger = get_logger(__name__)


class ItemWriteHandler:
    """
    Consumer of {before, after} item writes.

    The index write is part of the item transaction and must succeed. The
    embedding event runs afterwards; when it fails the item stays indexed
    and the event is returned so the caller can retry it.
    """

    def __init__(self, maintainer: IndexMaintainer, pipeline: Optional[EmbeddingPipeline] = None):
        self.maintainer = maintainer
        self.pipeline = pipeline

    def on_item_written(self, before: Optional[Item], after: Optional[Item]) -> Optional[ItemEvent]:
        """
        Apply one item write.

        Returns:
            The embedding event that failed, or None when nothing is left to do
        """
        self.maintainer.apply_item_write(before, after)

        event = diff_item_images(before, after)
        if event is None or self.pipeline is None:
            return None

        try:
            action = self.pipeline.handle(event)
        except Exception as e:
            log_exception(logger, f"embedding update for {event.item_id}", e)
            return event

        logger.debug(f"Embedding {action} for {event.item_id}")
        return None

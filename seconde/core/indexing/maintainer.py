"""
Search index maintainer.

Every item mutation writes the item row and its search index row in the
same transaction, so the two never disagree once a transaction settles.
Counters are read and written inside that transaction to avoid lost
updates under concurrent increments.

Example:
    >>> maintainer = IndexMaintainer(store)
    >>> maintainer.apply_item_write(None, item)      # create
    >>> maintainer.increment_view(item.id)
    >>> maintainer.toggle_like(item.id, "user-1", liked=True)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Tuple, TypeVar

from sqlalchemy.orm import Session

from seconde.core.indexing.projection import project_item
from seconde.database.document_store import DocumentStore
from seconde.database.models import ItemRow, SearchIndexRow, item_to_row, row_to_item
from seconde.domain.entities import Item
from seconde.domain.entities.item import utcnow
from seconde.utils import get_logger
from seconde.utils.config import PopularityConfig
from seconde.utils.exceptions import InvalidInputError, ItemNotFoundError, PermissionDeniedError

logger = get_logger(__name__)

T = TypeVar("T")

# Fields a seller may edit through update_fields
EDITABLE_FIELDS = frozenset({
    "title", "condition", "category", "brand", "size", "color", "material",
    "description", "images", "is_active", "moderation_status",
    "latitude", "longitude", "city",
})


def _check_seller(row: ItemRow, editor_id: Optional[str]) -> None:
    if editor_id is not None and row.seller_id != editor_id:
        raise PermissionDeniedError(f"Item {row.id} belongs to another seller", item_id=row.id)


@dataclass
class PriceChange:
    """Outcome of a price update."""

    item_id: str
    old_price: float
    new_price: float

    @property
    def discount_percent(self) -> int:
        """Rounded percentage drop, 0 when the price did not go down."""
        if self.old_price <= 0 or self.new_price >= self.old_price:
            return 0
        return int(round((self.old_price - self.new_price) / self.old_price * 100))

    @property
    def is_drop(self) -> bool:
        return self.discount_percent > 0


class IndexMaintainer:
    """
    Applies item mutations together with their index projection.

    Attributes:
        store: Document store providing transactions.
        weights: Popularity constants used when projecting.
        geohash_precision: Length of geohashes written to the index.
    """

    def __init__(
        self,
        store: DocumentStore,
        weights: Optional[PopularityConfig] = None,
        geohash_precision: int = 7,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.weights = weights or PopularityConfig()
        self.geohash_precision = geohash_precision
        self.clock = clock

    def apply_item_write(self, before: Optional[Item], after: Optional[Item]) -> Optional[Item]:
        """
        Handle an item create, update or delete.

        Args:
            before: Item state before the write (None on create).
            after: Item state after the write (None on delete).

        Returns:
            The written item, or None for a delete.
        """
        if before is None and after is None:
            raise InvalidInputError("An item write needs a before or an after state")
        now = self.clock()

        if after is None:
            item_id = before.id

            def delete(session: Session) -> None:
                row = session.get(ItemRow, item_id)
                if row is not None:
                    session.delete(row)
                entry = session.get(SearchIndexRow, item_id)
                if entry is not None:
                    entry.is_active = False
                    entry.pending_prune = True
                    entry.last_indexed = now

            self.store.run_transaction(delete)
            logger.info(f"Item {item_id} deleted, index entry flagged for pruning")
            return None

        def write(session: Session) -> Item:
            session.merge(item_to_row(after))
            self._write_index(session, after, now)
            return after

        written = self.store.run_transaction(write)
        action = "created" if before is None else "updated"
        logger.debug(f"Item {after.id} {action} and reindexed")
        return written

    def increment_view(self, item_id: str) -> int:
        """Add one view and return the new count."""

        def change(row: ItemRow) -> int:
            row.views = (row.views or 0) + 1
            return row.views

        _, views = self._mutate(item_id, change, touch=False)
        return views

    def toggle_like(self, item_id: str, user_id: str, liked: bool) -> int:
        """
        Set whether ``user_id`` likes the item and return the like count.

        Repeating the same call is a no-op, and the count never drops below zero.
        """

        def change(row: ItemRow) -> int:
            liked_by = list(row.liked_by or [])
            likes = row.likes or 0
            if liked and user_id not in liked_by:
                liked_by.append(user_id)
                likes += 1
            elif not liked and user_id in liked_by:
                liked_by.remove(user_id)
                likes = max(0, likes - 1)
            row.liked_by = liked_by
            row.likes = likes
            return likes

        _, likes = self._mutate(item_id, change, touch=False)
        return likes

    def update_price(self, item_id: str, price: float, editor_id: Optional[str] = None) -> PriceChange:
        """Change the price; the returned PriceChange reports any drop.

        With ``editor_id`` the change is refused unless it is the seller's.
        """
        if price < 0:
            raise InvalidInputError("Price cannot be negative", field="price", value=price)

        def change(row: ItemRow) -> PriceChange:
            _check_seller(row, editor_id)
            result = PriceChange(item_id=item_id, old_price=row.price, new_price=price)
            row.price = price
            return result

        _, result = self._mutate(item_id, change)
        if result.is_drop:
            logger.info(f"Price drop on {item_id}: {result.old_price} -> {price} (-{result.discount_percent}%)")
        return result

    def mark_sold(self, item_id: str) -> Item:
        """Flag the item sold; its index entry is left for the pruning job."""

        def change(row: ItemRow) -> None:
            row.is_sold = True

        item, _ = self._mutate(item_id, change)
        logger.info(f"Item {item_id} marked sold")
        return item

    def update_fields(self, item_id: str, editor_id: Optional[str] = None, **fields: Any) -> Item:
        """Apply seller edits to the editable fields of an item.

        Raises:
            PermissionDeniedError: If ``editor_id`` is given and is not the seller.
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise InvalidInputError(f"Fields not editable: {sorted(unknown)}", field=",".join(sorted(unknown)))

        def change(row: ItemRow) -> None:
            _check_seller(row, editor_id)
            for name, value in fields.items():
                setattr(row, name, list(value) if isinstance(value, list) else value)

        item, _ = self._mutate(item_id, change)
        return item

    def _mutate(
        self,
        item_id: str,
        change: Callable[[ItemRow], T],
        touch: bool = True,
    ) -> Tuple[Item, T]:
        """Read-modify-write one item and its index entry atomically."""
        if not item_id:
            raise InvalidInputError("Item id is required", field="item_id")

        def work(session: Session) -> Tuple[Item, T]:
            now = self.clock()
            row = session.get(ItemRow, item_id, with_for_update=True)
            if row is None:
                raise ItemNotFoundError(f"Item {item_id} not found", item_id=item_id)

            result = change(row)
            if touch:
                row.updated_at = now
            # Validates the new state before anything is flushed
            item = row_to_item(row)
            self._write_index(session, item, now)
            return item, result

        return self.store.run_transaction(work)

    def _write_index(self, session: Session, item: Item, now: datetime) -> None:
        session.merge(SearchIndexRow(**project_item(item, now, self.weights, self.geohash_precision)))

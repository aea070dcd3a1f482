"""Database module: document collections and embedding storage."""

from .document_store import DocumentStore, chunked
from .models import (
    Base,
    ItemRow,
    MomentRow,
    SearchIndexRow,
    SwapPartyRow,
    SwapRow,
    UserRow,
    item_to_row,
    moment_to_row,
    row_to_index_entry,
    row_to_item,
    row_to_moment,
    row_to_swap,
    row_to_swap_party,
    row_to_user,
    swap_party_to_row,
    swap_to_row,
    user_to_row,
)
from .vector_store import EmbeddingStore

__all__ = [
    # Stores
    "DocumentStore",
    "EmbeddingStore",
    "chunked",
    # Rows
    "Base",
    "ItemRow",
    "MomentRow",
    "SearchIndexRow",
    "SwapPartyRow",
    "SwapRow",
    "UserRow",
    # Conversion helpers
    "item_to_row",
    "moment_to_row",
    "row_to_index_entry",
    "row_to_item",
    "row_to_moment",
    "row_to_swap",
    "row_to_swap_party",
    "row_to_user",
    "swap_party_to_row",
    "swap_to_row",
    "user_to_row",
]

"""Search index projection and maintenance."""

from seconde.core.indexing.keywords import generate_search_keywords
from seconde.core.indexing.maintainer import IndexMaintainer, PriceChange
from seconde.core.indexing.projection import MIRRORED_FIELDS, mirrored_fields_match, project_item

__all__ = [
    "generate_search_keywords",
    "IndexMaintainer",
    "PriceChange",
    "MIRRORED_FIELDS",
    "mirrored_fields_match",
    "project_item",
]

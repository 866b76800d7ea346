"""
==============================================================================
Catalog Package - Liner/Ship Browse Tree
==============================================================================

Searchable two-level catalog with lazily loaded inspection scores.

Classes:
--------
- CatalogTree: Liner/ship nodes with open/visible state
- DetailCache: Per-ship fetch cache with deduplication and retry
- SearchEngine: Query-driven visibility and forced expansion

==============================================================================
"""

from .models import (
    BuildReport,
    DetailResult,
    DetailRow,
    FilterResult,
    LinerNode,
    LinerRecord,
    ShipNode,
    ShipRecord,
)
from .tree import CatalogTree
from .cache import CacheEntry, CacheState, DetailCache
from .search import SearchEngine

__all__ = [
    "BuildReport",
    "DetailResult",
    "DetailRow",
    "FilterResult",
    "LinerNode",
    "LinerRecord",
    "ShipNode",
    "ShipRecord",
    "CatalogTree",
    "CacheEntry",
    "CacheState",
    "DetailCache",
    "SearchEngine",
]

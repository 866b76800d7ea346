"""
==============================================================================
Browse Service Module
==============================================================================

The browse session: one service instance owning the catalog tree, the
detail cache and the current search query.

This module implements:
- BrowseService: load/reload, toggles, filtering and detail loading
- Change notifications for push-style presentation

Lifecycle:
---------
    load() ──▶ fetch_catalog() ──▶ new CatalogTree + new DetailCache
           ──▶ collapse_all() ──▶ re-apply current query

Each load replaces tree and cache together; nothing survives a reload.
A failed load keeps the previous tree.

Events:
------
Listeners registered with ``subscribe`` are called as ``listener(event,
payload)`` for: "reloaded", "tree" (toggle/collapse), "filter" and
"details" (a fetch settled). Listeners run synchronously inside the event
loop and must not block.

Concurrency:
-----------
All mutations run on the event loop thread and never await in the middle
of a change, so each toggle or filter pass is atomic. Only ``load`` and
``ensure_details`` suspend. In-flight fetches are never cancelled by
toggles, filters or reloads.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from shipscores.catalog import (
    BuildReport,
    CacheState,
    CatalogTree,
    DetailCache,
    DetailResult,
    FilterResult,
    SearchEngine,
)
from shipscores.core import exceptions
from shipscores.sources import DataSource, SourceError


# Module logger
logger = logging.getLogger(__name__)


Listener = Callable[[str, Dict[str, Any]], None]


class BrowseService:
    """
    Service for browsing the liner/ship catalog.

    Attributes:
        _source: Data source adapter
        _tree: Current catalog tree (None until the first load)
        _cache: Detail cache belonging to the current tree
        _query: Normalized current query

    Example:
        >>> service = BrowseService(LocalJsonSource(catalog, details))
        >>> await service.load()
        >>> service.apply_filter("star")
        FilterResult(query='star', matched_groups=1, matched_items=2)
        >>> future = service.toggle_item("ship-a")
        >>> result = await future
    """

    def __init__(self, source: DataSource) -> None:
        """
        Initialize the browse service.

        Args:
            source: Adapter providing catalog and detail data
        """
        self._source = source
        self._engine = SearchEngine()
        self._tree: Optional[CatalogTree] = None
        self._cache: Optional[DetailCache] = None
        self._query = ""
        self._filter = FilterResult()
        self._report: Optional[BuildReport] = None
        self._loaded_at: Optional[datetime] = None
        self._generation = 0
        self._load_lock = asyncio.Lock()
        self._listeners: List[Listener] = []

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def source(self) -> DataSource:
        return self._source

    @property
    def is_loaded(self) -> bool:
        return self._tree is not None

    @property
    def tree(self) -> CatalogTree:
        """Current tree; raises CATALOG_NOT_LOADED before the first load."""
        if self._tree is None:
            raise exceptions.catalog_not_loaded()
        return self._tree

    @property
    def cache(self) -> DetailCache:
        if self._cache is None:
            raise exceptions.catalog_not_loaded()
        return self._cache

    @property
    def query(self) -> str:
        return self._query

    @property
    def last_filter(self) -> FilterResult:
        return self._filter

    @property
    def build_report(self) -> Optional[BuildReport]:
        return self._report

    @property
    def loaded_at(self) -> Optional[datetime]:
        return self._loaded_at

    # =========================================================================
    # LOADING
    # =========================================================================

    async def load(self) -> BuildReport:
        """
        (Re)load the catalog and rebuild tree and cache.

        Returns:
            BuildReport for the new tree

        Raises:
            AppException: CATALOG_LOAD_FAILED if the source fails
        """
        async with self._load_lock:
            logger.info(f"Loading catalog from {self._source.name} source...")
            try:
                records = await self._source.fetch_catalog()
            except SourceError as e:
                logger.error(f"❌ Catalog load failed: {e}")
                raise exceptions.catalog_load_failed(str(e)) from e

            tree = CatalogTree()
            report = tree.build(records)
            tree.collapse_all()

            self._generation += 1
            generation = self._generation
            self._tree = tree
            self._cache = DetailCache(
                self._source.fetch_details,
                listener=lambda ship_id, result: self._on_details(generation, ship_id, result),
            )
            self._report = report
            self._loaded_at = datetime.now(timezone.utc)
            self._filter = self._engine.apply_filter(tree, self._query)

            logger.info(
                f"✅ Catalog loaded: {report.liners} liners, {report.ships} ships"
            )
            self._emit("reloaded", {"report": report.model_dump()})
            return report

    # =========================================================================
    # TREE OPERATIONS
    # =========================================================================

    def toggle_group(self, liner_id: str, open: Optional[bool] = None) -> bool:
        """Toggle a liner; closing collapses its ships."""
        is_open = self.tree.toggle_group(liner_id, open)
        self._emit("tree", {"liner_id": liner_id, "open": is_open})
        return is_open

    def toggle_item(self, ship_id: str, open: Optional[bool] = None) -> Optional[asyncio.Future]:
        """
        Toggle a ship.

        Returns:
            The detail future when the ship was opened, else None
        """
        is_open = self.tree.toggle_item(ship_id, open)
        future = self.cache.ensure_loaded(ship_id) if is_open else None
        self._emit("tree", {"ship_id": ship_id, "open": is_open})
        return future

    def collapse_all(self) -> None:
        self.tree.collapse_all()
        self._emit("tree", {"collapsed": True})

    # =========================================================================
    # SEARCH
    # =========================================================================

    def apply_filter(self, query: Optional[str]) -> FilterResult:
        """Apply a query to the whole tree and remember it for reloads."""
        result = self._engine.apply_filter(self.tree, query)
        self._query = result.query
        self._filter = result
        self._emit("filter", {"query": result.query})
        return result

    def clear_filter(self) -> FilterResult:
        return self.apply_filter("")

    # =========================================================================
    # DETAILS
    # =========================================================================

    async def ensure_details(self, ship_id: str) -> DetailResult:
        """
        Wait for a ship's inspection rows.

        The shared future is shielded so a cancelled caller does not cancel
        the fetch for other waiters.

        Raises:
            AppException: NODE_NOT_FOUND for unknown ships
        """
        self.tree.get_item(ship_id)
        future = self.cache.ensure_loaded(ship_id)
        return await asyncio.shield(future)

    def detail_state(self, ship_id: str) -> CacheState:
        return self.cache.state_of(ship_id)

    def _on_details(self, generation: int, ship_id: str, result: DetailResult) -> None:
        if generation != self._generation:
            logger.debug(f"Ignoring details for {ship_id} from a replaced catalog")
            return
        self._emit("details", {"ship_id": ship_id, "error": result.error})

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str, payload: Dict[str, Any]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                logger.exception(f"Listener failed for event '{event}'")

    # =========================================================================
    # STATISTICS
    # =========================================================================

    def get_stats(self) -> Dict[str, Any]:
        """Summary used by the health endpoint."""
        if self._tree is None:
            return {"loaded": False, "source": self._source.name}

        return {
            "loaded": True,
            "source": self._source.name,
            "liners": self._tree.group_count,
            "ships": self._tree.item_count,
            "skipped": self._report.skipped if self._report else 0,
            "loaded_at": self._loaded_at.isoformat() if self._loaded_at else None,
            "query": self._query,
            "cache": self.cache.get_stats(),
        }

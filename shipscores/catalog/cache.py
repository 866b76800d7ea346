"""
==============================================================================
Lazy Detail Cache Module
==============================================================================

Per-ship inspection score cache with request deduplication.

State Machine (per ship id):
---------------------------

    ┌──────┐  ensure_loaded()  ┌─────────┐  success  ┌────────┐
    │ IDLE │ ────────────────▶ │ LOADING │ ────────▶ │ LOADED │
    └──────┘                   └─────────┘           └────────┘
                                 ▲     │
                 ensure_loaded() │     │ failure
                                 │     ▼
                               ┌────────┐
                               │ FAILED │
                               └────────┘

- LOADED answers from memory; no fetch.
- LOADING hands every caller the same pending future (one fetch per id).
- FAILED is never sticky: the next request starts a new fetch.

Every fetch ends in LOADED or FAILED, including when its task is cancelled.
Callers that may themselves be cancelled should wrap the future in
``asyncio.shield`` so they cannot cancel it for the other waiters.

==============================================================================
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from .models import DetailResult, DetailRow


# Module logger
logger = logging.getLogger(__name__)


FetchDetails = Callable[[str], Awaitable[List[DetailRow]]]
SettleListener = Callable[[str, DetailResult], None]


class CacheState(str, enum.Enum):
    """Fetch lifecycle of one cache entry."""
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class CacheEntry:
    """
    Fetch state and rows for one ship.

    Attributes:
        item_id: Ship id
        state: Current lifecycle state
        rows: Rows from the last successful fetch
        pending: Future shared by everyone waiting on the in-flight fetch
        attempts: Number of fetches started for this id
        last_error: Message of the most recent failure
    """

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        self.state = CacheState.IDLE
        self.rows: List[DetailRow] = []
        self.pending: Optional[asyncio.Future] = None
        self.task: Optional[asyncio.Task] = None
        self.attempts = 0
        self.last_error: Optional[str] = None

    def __repr__(self) -> str:
        return f"CacheEntry({self.item_id!r}, state={self.state.value}, rows={len(self.rows)})"


class DetailCache:
    """
    Lazily loads and caches inspection rows per ship.

    Must be used from inside a running event loop. The cache belongs to one
    catalog load; a reload replaces it along with the tree.

    Example:
        >>> cache = DetailCache(source.fetch_details)
        >>> result = await cache.ensure_loaded("ship-a")
        >>> result.rows
        [DetailRow(date='2025-03-15', score='98/100')]
    """

    def __init__(
        self,
        fetch_details: FetchDetails,
        listener: Optional[SettleListener] = None
    ) -> None:
        """
        Args:
            fetch_details: Adapter coroutine returning rows for a ship id
            listener: Called with (ship_id, result) whenever a fetch settles
        """
        self._fetch_details = fetch_details
        self._listener = listener
        self._entries: Dict[str, CacheEntry] = {}
        self._fetch_count = 0

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def ensure_loaded(self, item_id: str) -> asyncio.Future:
        """
        Return a future resolving to the ship's DetailResult.

        - loaded: an already-resolved future with the cached rows
        - loading: the future of the fetch already in flight
        - idle/failed: a new future backed by a new fetch

        The future never raises for fetch failures; it resolves with
        ``DetailResult(rows=[], error=True)`` instead.
        """
        loop = asyncio.get_running_loop()
        entry = self._entries.get(item_id)
        if entry is None:
            entry = self._entries[item_id] = CacheEntry(item_id)

        if entry.state is CacheState.LOADED:
            future = loop.create_future()
            future.set_result(DetailResult(rows=list(entry.rows)))
            return future

        if entry.state is CacheState.LOADING:
            if entry.pending is None or entry.pending.done():
                # A waiter cancelled the shared future; re-arm it for the same fetch.
                entry.pending = loop.create_future()
            return entry.pending

        entry.state = CacheState.LOADING
        entry.pending = loop.create_future()
        entry.attempts += 1
        entry.last_error = None
        self._fetch_count += 1
        logger.debug(f"Fetching details for {item_id} (attempt {entry.attempts})")

        entry.task = loop.create_task(self._fetch(entry))
        return entry.pending

    def entry(self, item_id: str) -> Optional[CacheEntry]:
        """Get the entry for a ship, or None if it was never requested."""
        return self._entries.get(item_id)

    def state_of(self, item_id: str) -> CacheState:
        """Current state for a ship; never-requested ids are IDLE."""
        entry = self._entries.get(item_id)
        return entry.state if entry else CacheState.IDLE

    @property
    def fetch_count(self) -> int:
        """Number of adapter invocations made by this cache."""
        return self._fetch_count

    def get_stats(self) -> Dict[str, int]:
        """Entry counts per state plus total fetches."""
        stats = {state.value: 0 for state in CacheState}
        for entry in self._entries.values():
            stats[entry.state.value] += 1
        stats["fetches"] = self._fetch_count
        return stats

    # =========================================================================
    # FETCH LIFECYCLE
    # =========================================================================

    async def _fetch(self, entry: CacheEntry) -> None:
        try:
            raw_rows = await self._fetch_details(entry.item_id)
            rows = [
                row if isinstance(row, DetailRow) else DetailRow.model_validate(row)
                for row in raw_rows
            ]
        except asyncio.CancelledError:
            self._settle_failure(entry, "fetch cancelled")
            raise
        except Exception as e:
            logger.warning(f"Detail fetch failed for {entry.item_id}: {e}")
            self._settle_failure(entry, str(e) or type(e).__name__)
            return

        entry.state = CacheState.LOADED
        entry.rows = rows
        logger.debug(f"Loaded {len(rows)} rows for {entry.item_id}")
        self._resolve(entry, DetailResult(rows=list(rows)))

    def _settle_failure(self, entry: CacheEntry, reason: str) -> None:
        entry.state = CacheState.FAILED
        entry.rows = []
        entry.last_error = reason
        self._resolve(entry, DetailResult(rows=[], error=True))

    def _resolve(self, entry: CacheEntry, result: DetailResult) -> None:
        pending, entry.pending = entry.pending, None
        entry.task = None
        if pending is not None and not pending.done():
            pending.set_result(result)

        if self._listener is not None:
            try:
                self._listener(entry.item_id, result)
            except Exception:
                logger.exception(f"Detail listener failed for {entry.item_id}")

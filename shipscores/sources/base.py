"""
Data Source Interface

Every catalog backend implements DataSource. The browse session only talks
to sources through this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from shipscores.catalog.models import DetailRow, LinerRecord


class SourceError(Exception):
    """Raised by a data source when a catalog or detail fetch fails."""


class DataSource(ABC):
    """Abstract catalog backend."""

    name: str = "abstract"

    @abstractmethod
    async def fetch_catalog(self) -> List[LinerRecord]:
        """Return every liner with its ships, in display order."""

    @abstractmethod
    async def fetch_details(self, ship_id: str) -> List[DetailRow]:
        """Return the inspection rows for one ship."""

    async def close(self) -> None:
        """Release any held resources."""
        return None

"""
==============================================================================
Local JSON Source Module
==============================================================================

File-backed data source for development and demos.

Catalog Structure:
-----------------
{
  "liners": [
    {
      "name": "Oceanic Cruises",
      "ships": [
        {"id": "ship-a", "name": "Ocean Star", "flag": "Bahamas"},
        ...
      ]
    }
  ]
}

Keys other than "id" and "name" on a ship become its metadata. A bare list
of liners is accepted as well.

Details Structure:
-----------------
{
  "ship-a": [{"date": "2025-03-15", "score": "98/100"}, ...]
}

Files are re-read on every fetch so a catalog reload picks up edits. Reads
run in a worker thread to keep the event loop free.

==============================================================================
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List

from shipscores.catalog.models import DetailRow, LinerRecord, ShipRecord

from .base import DataSource, SourceError


# Module logger
logger = logging.getLogger(__name__)


class LocalJsonSource(DataSource):
    """
    Data source reading a catalog file and a details file.

    Attributes:
        catalog_path: Liner/ship catalog JSON
        details_path: Inspection rows keyed by ship id
    """

    name = "local"

    def __init__(self, catalog_path: Path, details_path: Path) -> None:
        self.catalog_path = Path(catalog_path)
        self.details_path = Path(details_path)

    # =========================================================================
    # DATA SOURCE API
    # =========================================================================

    async def fetch_catalog(self) -> List[LinerRecord]:
        data = await asyncio.to_thread(self._read_json, self.catalog_path)
        liners = data.get("liners", []) if isinstance(data, dict) else data

        if not isinstance(liners, list):
            raise SourceError(f"Catalog in {self.catalog_path} has no liner list")

        records = [self._to_liner(raw) for raw in liners]
        logger.info(f"📂 Read {len(records)} liners from {self.catalog_path}")
        return records

    async def fetch_details(self, ship_id: str) -> List[DetailRow]:
        data = await asyncio.to_thread(self._read_json, self.details_path)
        if not isinstance(data, dict):
            raise SourceError(f"Details in {self.details_path} must be an object")

        raw_rows = data.get(ship_id, [])
        if not isinstance(raw_rows, list):
            raise SourceError(f"Details for {ship_id} must be a list")

        try:
            return [DetailRow.model_validate(row) for row in raw_rows]
        except ValueError as e:
            raise SourceError(f"Invalid detail row for {ship_id}: {e}") from e

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _read_json(self, path: Path) -> Any:
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError as e:
            logger.error(f"Data file not found: {path}")
            raise SourceError(f"Data file not found: {path}") from e
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {path}: {e}")
            raise SourceError(f"Invalid JSON in {path}: {e}") from e
        except UnicodeDecodeError as e:
            logger.error(f"Data file is not UTF-8: {path}")
            raise SourceError(f"Data file is not UTF-8: {path}") from e
        except OSError as e:
            logger.error(f"Cannot read data file {path}: {e}")
            raise SourceError(f"Cannot read data file {path}: {e}") from e

    @staticmethod
    def _to_liner(raw: Any) -> LinerRecord:
        # Malformed entries become empty records; the tree counts and skips them.
        if not isinstance(raw, dict):
            return LinerRecord()

        ships = []
        for raw_ship in raw.get("ships") or []:
            if not isinstance(raw_ship, dict):
                ships.append(ShipRecord())
                continue
            ships.append(ShipRecord(
                id=raw_ship.get("id"),
                name=raw_ship.get("name"),
                metadata={k: v for k, v in raw_ship.items() if k not in ("id", "name")},
            ))

        return LinerRecord(id=raw.get("id"), name=raw.get("name"), ships=ships)

"""
==============================================================================
Catalog Tree Module
==============================================================================

Two-level liner/ship tree with open/visible state.

Features:
---------
- Build from data source records, skipping malformed entries
- Fast id lookups for liners and ships
- Explicit toggles with cascading collapse
- Collapse-all used at load time and after every rebuild

Invariants:
-----------
- A closed liner has no open ships (enforced on every close).
- An open ship is always visible (hidden ships cannot be opened, and the
  filter closes every ship it hides).

==============================================================================
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Iterator, List, Optional, Set

from shipscores.core import exceptions

from .models import BuildReport, LinerNode, LinerRecord, ShipNode


# Module logger
logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Derive a liner id from its display name."""
    return _SLUG_RE.sub("-", name.casefold()).strip("-") or "liner"


class CatalogTree:
    """
    Liner/ship tree owned by a single browse session.

    Example:
        >>> tree = CatalogTree()
        >>> report = tree.build([LinerRecord(name="Oceanic", ships=[...])])
        >>> tree.toggle_group("oceanic")
        True
    """

    def __init__(self) -> None:
        self._liners: Dict[str, LinerNode] = {}
        self._ships: Dict[str, ShipNode] = {}

    # =========================================================================
    # BUILDING
    # =========================================================================

    def build(self, records: Iterable[LinerRecord]) -> BuildReport:
        """
        Replace the tree contents with nodes built from source records.

        Liners without a name and ships without an id or name are skipped,
        as are ships whose id was already used. The build continues for
        everything else.

        Args:
            records: Liner records in display order

        Returns:
            BuildReport with node and skip counts
        """
        self._liners.clear()
        self._ships.clear()
        report = BuildReport()

        for record in records:
            if not record.name:
                report.skipped_liners += 1
                report.skipped_ships += len(record.ships)
                logger.warning("Skipping liner without a name")
                continue

            liner = LinerNode(id=self._unique_liner_id(record), name=record.name)
            self._liners[liner.id] = liner
            report.liners += 1

            for ship_record in record.ships:
                if not ship_record.id or not ship_record.name:
                    report.skipped_ships += 1
                    logger.warning(f"Skipping malformed ship under '{liner.name}'")
                    continue
                if ship_record.id in self._ships:
                    report.skipped_ships += 1
                    logger.warning(f"Skipping duplicate ship id: {ship_record.id}")
                    continue

                ship = ShipNode(
                    id=ship_record.id,
                    name=ship_record.name,
                    liner_id=liner.id,
                    metadata=dict(ship_record.metadata),
                )
                self._ships[ship.id] = ship
                liner.ship_ids.append(ship.id)
                report.ships += 1

        logger.info(
            f"Built catalog tree: {report.liners} liners, {report.ships} ships "
            f"({report.skipped} skipped)"
        )
        return report

    def _unique_liner_id(self, record: LinerRecord) -> str:
        base = record.id or slugify(record.name)
        candidate = base
        suffix = 2
        while candidate in self._liners:
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def get_group(self, liner_id: str) -> LinerNode:
        """Get a liner by id or raise NODE_NOT_FOUND."""
        liner = self._liners.get(liner_id)
        if liner is None:
            raise exceptions.node_not_found("liner", liner_id)
        return liner

    def get_item(self, ship_id: str) -> ShipNode:
        """Get a ship by id or raise NODE_NOT_FOUND."""
        ship = self._ships.get(ship_id)
        if ship is None:
            raise exceptions.node_not_found("ship", ship_id)
        return ship

    def has_item(self, ship_id: str) -> bool:
        return ship_id in self._ships

    def groups(self) -> List[LinerNode]:
        return list(self._liners.values())

    def items(self) -> List[ShipNode]:
        return list(self._ships.values())

    def items_of(self, liner: LinerNode) -> Iterator[ShipNode]:
        for ship_id in liner.ship_ids:
            yield self._ships[ship_id]

    def group_of(self, ship: ShipNode) -> LinerNode:
        return self._liners[ship.liner_id]

    def is_on_screen(self, ship: ShipNode) -> bool:
        """A ship is shown only when it and its liner both pass the filter."""
        return ship.visible and self.group_of(ship).visible

    @property
    def group_count(self) -> int:
        return len(self._liners)

    @property
    def item_count(self) -> int:
        return len(self._ships)

    def open_ids(self) -> Set[str]:
        """Ids of every open node (liners and ships)."""
        return {n.id for n in self._liners.values() if n.open} | {
            n.id for n in self._ships.values() if n.open
        }

    def visible_ids(self) -> Set[str]:
        """Ids of every node flagged visible (liners and ships)."""
        return {n.id for n in self._liners.values() if n.visible} | {
            n.id for n in self._ships.values() if n.visible
        }

    # =========================================================================
    # STATE TRANSITIONS
    # =========================================================================

    def toggle_group(self, liner_id: str, open: Optional[bool] = None) -> bool:
        """
        Flip (or set) a liner's open state. Closing collapses its ships.

        Args:
            liner_id: Liner to toggle
            open: Target state; flips when None

        Returns:
            The liner's new open state
        """
        liner = self.get_group(liner_id)
        target = (not liner.open) if open is None else open
        liner.open = target

        if not target:
            for ship in self.items_of(liner):
                ship.open = False

        logger.debug(f"Liner {liner.id} open={target}")
        return target

    def toggle_item(self, ship_id: str, open: Optional[bool] = None) -> bool:
        """
        Flip (or set) a ship's open state.

        Only ships that are on screen may be toggled; opening additionally
        requires the owning liner to be open.

        Raises:
            AppException: NODE_NOT_FOUND for unknown ids
            AppException: NODE_HIDDEN when the ship is not on screen
        """
        ship = self.get_item(ship_id)
        liner = self.group_of(ship)

        if not self.is_on_screen(ship):
            raise exceptions.node_hidden("ship", ship_id, "hidden by the current filter")

        target = (not ship.open) if open is None else open
        if target and not liner.open:
            raise exceptions.node_hidden("ship", ship_id, f"liner '{liner.id}' is closed")

        ship.open = target
        logger.debug(f"Ship {ship.id} open={target}")
        return target

    def collapse_all(self) -> None:
        """Close every liner and ship."""
        for liner in self._liners.values():
            liner.open = False
        for ship in self._ships.values():
            ship.open = False
        logger.debug("All tree nodes collapsed")

"""
==============================================================================
Search / Filter Module
==============================================================================

Case-insensitive substring search over liner and ship names.

Rules:
------
- A liner is shown when its name matches or any of its ships' names match.
- Shown liners are forced open; hidden liners are closed with all their ships.
- In a shown liner, a ship is shown when the liner name matches (a liner
  match reveals every ship) or the ship name matches.
- Hidden ships are closed. The detail cache is never touched.
- An empty or whitespace-only query shows everything and collapses the tree.

One pass updates every node before returning, so callers never observe a
partially filtered tree.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import FilterResult
from .tree import CatalogTree


# Module logger
logger = logging.getLogger(__name__)


class SearchEngine:
    """Applies a text query to a CatalogTree's visible/open flags."""

    @staticmethod
    def normalize(query: Optional[str]) -> str:
        """Trim and case-fold a raw query."""
        return (query or "").strip().casefold()

    @staticmethod
    def matches(name: str, normalized_query: str) -> bool:
        return normalized_query in name.casefold()

    def apply_filter(self, tree: CatalogTree, query: Optional[str]) -> FilterResult:
        """
        Recompute visibility for the whole tree.

        Args:
            tree: Tree to update in place
            query: Raw user query

        Returns:
            FilterResult with the normalized query and matched counts
        """
        q = self.normalize(query)

        if not q:
            return self._clear(tree)

        matched_groups = 0
        matched_items = 0

        for liner in tree.groups():
            ships = list(tree.items_of(liner))
            liner_match = self.matches(liner.name, q)
            ship_matches = [self.matches(ship.name, q) for ship in ships]

            if not (liner_match or any(ship_matches)):
                liner.visible = False
                liner.open = False
                for ship in ships:
                    ship.open = False
                    ship.visible = True
                continue

            liner.visible = True
            liner.open = True
            matched_groups += 1

            for ship, ship_match in zip(ships, ship_matches):
                ship.visible = liner_match or ship_match
                if ship.visible:
                    matched_items += 1
                else:
                    ship.open = False

        result = FilterResult(query=q, matched_groups=matched_groups, matched_items=matched_items)
        logger.info(
            f"Search applied: {q!r} -> {matched_groups} liners, {matched_items} ships"
        )
        return result

    def _clear(self, tree: CatalogTree) -> FilterResult:
        for liner in tree.groups():
            liner.visible = True
            liner.open = False
        for ship in tree.items():
            ship.visible = True
            ship.open = False

        logger.info("Search cleared: tree collapsed")
        return FilterResult(
            query="",
            matched_groups=tree.group_count,
            matched_items=tree.item_count,
        )

"""
==============================================================================
Catalog Schemas Module
==============================================================================

Request and response schemas for browsing the ship catalog.

The presentation layer reads open/visible flags, cache states and match
counters from these snapshots; it never inspects rendered markup.

==============================================================================
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from shipscores.catalog import (
    BuildReport,
    CacheState,
    CatalogTree,
    DetailCache,
    DetailResult,
    DetailRow,
    FilterResult,
    LinerNode,
    ShipNode,
)


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class ToggleRequest(BaseModel):
    """Optional explicit target state for a toggle."""
    open: Optional[bool] = None


class FilterRequest(BaseModel):
    """Search query; blank clears the filter."""
    query: str = Field(default="", max_length=200)


# =============================================================================
# SNAPSHOT SCHEMAS
# =============================================================================

class ShipView(BaseModel):
    """Ship as seen by the presentation layer."""
    id: str
    name: str
    liner_id: str
    open: bool
    visible: bool
    detail_state: CacheState
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_node(cls, ship: ShipNode, cache: DetailCache) -> "ShipView":
        return cls(
            id=ship.id,
            name=ship.name,
            liner_id=ship.liner_id,
            open=ship.open,
            visible=ship.visible,
            detail_state=cache.state_of(ship.id),
            metadata=ship.metadata,
        )


class LinerView(BaseModel):
    """Liner with its ships."""
    id: str
    name: str
    open: bool
    visible: bool
    ships: List[ShipView]

    @classmethod
    def from_node(cls, liner: LinerNode, tree: CatalogTree, cache: DetailCache) -> "LinerView":
        return cls(
            id=liner.id,
            name=liner.name,
            open=liner.open,
            visible=liner.visible,
            ships=[ShipView.from_node(s, cache) for s in tree.items_of(liner)],
        )


class FilterView(BaseModel):
    """Filter outcome plus its presentation status."""
    query: str
    matched_liners: int
    matched_ships: int
    status: str

    @classmethod
    def from_result(cls, result: FilterResult) -> "FilterView":
        return cls(
            query=result.query,
            matched_liners=result.matched_groups,
            matched_ships=result.matched_items,
            status=result.status,
        )


class TreeSnapshot(BaseModel):
    """Whole-tree read model."""
    success: bool = True
    liners: List[LinerView]
    filter: FilterView
    report: Optional[BuildReport] = None

    @classmethod
    def create(
        cls,
        tree: CatalogTree,
        cache: DetailCache,
        result: FilterResult,
        report: Optional[BuildReport] = None
    ) -> "TreeSnapshot":
        return cls(
            liners=[LinerView.from_node(l, tree, cache) for l in tree.groups()],
            filter=FilterView.from_result(result),
            report=report,
        )


# =============================================================================
# OPERATION RESPONSES
# =============================================================================

class ToggleResponse(BaseModel):
    """Result of a liner or ship toggle."""
    success: bool = True
    id: str
    open: bool
    detail_state: Optional[CacheState] = None


class FilterResponse(BaseModel):
    success: bool = True
    filter: FilterView


class DetailResponse(BaseModel):
    """Inspection rows for one ship; ``error`` marks a failed fetch."""
    success: bool = True
    ship_id: str
    rows: List[DetailRow]
    error: bool
    state: CacheState

    @classmethod
    def from_result(cls, ship_id: str, result: DetailResult, state: CacheState) -> "DetailResponse":
        return cls(ship_id=ship_id, rows=result.rows, error=result.error, state=state)


class ReloadResponse(BaseModel):
    success: bool = True
    report: BuildReport
    filter: FilterView

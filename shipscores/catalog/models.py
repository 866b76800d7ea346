"""
==============================================================================
Catalog Models Module
==============================================================================

Pydantic models for the liner/ship catalog.

- Records (LinerRecord, ShipRecord) are what data sources hand over.
- Nodes (LinerNode, ShipNode) are the mutable tree the browser works on.
- DetailRow / DetailResult carry lazily fetched inspection scores.

==============================================================================
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def _as_text(value: Any) -> str:
    """Coerce loosely typed source values to stripped strings."""
    if value is None:
        return ""
    return str(value).strip()


# =============================================================================
# SOURCE RECORDS
# =============================================================================

class ShipRecord(BaseModel):
    """Ship as delivered by a data source. Empty id/name marks it malformed."""

    id: str = ""
    name: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", "name", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _as_text(v)


class LinerRecord(BaseModel):
    """Cruise liner with its ships, in source order."""

    id: Optional[str] = None
    name: str = ""
    ships: List[ShipRecord] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Optional[str]:
        text = _as_text(v)
        return text or None


# =============================================================================
# TREE NODES
# =============================================================================

class LinerNode(BaseModel):
    """
    Top-level catalog node.

    Attributes:
        id: Stable liner id within one catalog load
        name: Display name (searched)
        ship_ids: Owned ships in display order
        open: Expanded state
        visible: Result of the current filter
    """

    id: str
    name: str
    ship_ids: List[str] = Field(default_factory=list)
    open: bool = False
    visible: bool = True


class ShipNode(BaseModel):
    """
    Leaf catalog node whose inspection scores are fetched lazily.

    ``liner_id`` is a back-reference only; the liner owns the ship.
    """

    id: str
    name: str
    liner_id: str
    open: bool = False
    visible: bool = True
    metadata: Dict[str, Any] = Field(default_factory=dict)


class BuildReport(BaseModel):
    """Outcome of building a tree from source records."""

    liners: int = 0
    ships: int = 0
    skipped_liners: int = 0
    skipped_ships: int = 0

    @property
    def skipped(self) -> int:
        return self.skipped_liners + self.skipped_ships


# =============================================================================
# DETAILS
# =============================================================================

class DetailRow(BaseModel):
    """One inspection record. Values are kept as the source formats them."""

    date: str
    score: str

    @field_validator("date", "score", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        if v is None:
            raise ValueError("value is required")
        return _as_text(v)


class DetailResult(BaseModel):
    """Resolved value of a detail request; ``error`` marks a failed fetch."""

    rows: List[DetailRow] = Field(default_factory=list)
    error: bool = False


class FilterResult(BaseModel):
    """
    Outcome of one filter pass.

    ``status`` is a presentation hint: ``cleared`` for an empty query,
    ``none`` when a query left no liner or no ship on screen, ``matched``
    otherwise.
    """

    query: str = ""
    matched_groups: int = 0
    matched_items: int = 0

    @property
    def status(self) -> str:
        if not self.query:
            return "cleared"
        if self.matched_groups == 0 or self.matched_items == 0:
            return "none"
        return "matched"

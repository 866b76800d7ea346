"""
==============================================================================
Schemas Package - Pydantic Models
==============================================================================

Request and response schemas for the HTTP and WebSocket APIs.

==============================================================================
"""

from .common import MessageResponse
from .catalog import (
    DetailResponse,
    FilterRequest,
    FilterResponse,
    FilterView,
    LinerView,
    ReloadResponse,
    ShipView,
    ToggleRequest,
    ToggleResponse,
    TreeSnapshot,
)

__all__ = [
    # Common
    "MessageResponse",
    # Catalog
    "DetailResponse",
    "FilterRequest",
    "FilterResponse",
    "FilterView",
    "LinerView",
    "ReloadResponse",
    "ShipView",
    "ToggleRequest",
    "ToggleResponse",
    "TreeSnapshot",
]

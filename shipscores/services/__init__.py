"""
==============================================================================
Services Package - Business Logic Layer
==============================================================================

Service classes sitting between the API layer and the catalog model.

    ┌─────────────────┐
    │ API / WebSocket │
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │  BrowseService  │  ← Session state + operations
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │   DataSource    │  ← Catalog / detail fetching
    └─────────────────┘

==============================================================================
"""

from .browse_service import BrowseService

__all__ = [
    "BrowseService",
]

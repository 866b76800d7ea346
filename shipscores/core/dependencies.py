"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency functions resolving the browse session for HTTP routes and
WebSocket handlers.

The BrowseService lives on ``app.state.browse_service``; it is created by
the application lifespan and replaced only by a new application.

Usage:
------
    @router.get("/catalog")
    async def get_tree(service: BrowseService = Depends(get_browse_service)):
        ...

==============================================================================
"""

from __future__ import annotations

from fastapi import Request, WebSocket

from shipscores.core import exceptions
from shipscores.services import BrowseService


def _service_from_state(state) -> BrowseService:
    service = getattr(state, "browse_service", None)
    if service is None:
        raise exceptions.catalog_not_loaded()
    return service


def get_browse_service(request: Request) -> BrowseService:
    """Browse service for HTTP routes."""
    return _service_from_state(request.app.state)


def get_loaded_browse_service(request: Request) -> BrowseService:
    """Browse service that has finished at least one catalog load."""
    service = _service_from_state(request.app.state)
    if not service.is_loaded:
        raise exceptions.catalog_not_loaded()
    return service


def get_browse_service_ws(websocket: WebSocket) -> BrowseService:
    """Browse service for WebSocket handlers."""
    return _service_from_state(websocket.app.state)

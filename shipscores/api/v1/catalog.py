"""
==============================================================================
Catalog Browse Endpoints
==============================================================================

Endpoints for reading and driving the liner/ship browse tree.

==============================================================================
"""

from typing import Optional

from fastapi import APIRouter, Depends

from shipscores.core.dependencies import get_browse_service, get_loaded_browse_service
from shipscores.schemas.catalog import (
    DetailResponse,
    FilterRequest,
    FilterResponse,
    FilterView,
    ReloadResponse,
    ToggleRequest,
    ToggleResponse,
    TreeSnapshot,
)
from shipscores.schemas.common import MessageResponse
from shipscores.services import BrowseService


router = APIRouter(prefix="/catalog", tags=["Catalog"])


class CatalogController:
    """Controller for browse tree operations."""

    def __init__(self, service: BrowseService):
        self._service = service

    def snapshot(self) -> TreeSnapshot:
        """Current tree with flags, cache states and match counts."""
        return TreeSnapshot.create(
            self._service.tree,
            self._service.cache,
            self._service.last_filter,
            self._service.build_report,
        )

    async def reload(self) -> ReloadResponse:
        """Rebuild the tree from the data source."""
        report = await self._service.load()
        return ReloadResponse(
            report=report,
            filter=FilterView.from_result(self._service.last_filter),
        )

    def collapse(self) -> MessageResponse:
        self._service.collapse_all()
        return MessageResponse(message="All liners and ships collapsed")

    def toggle_liner(self, liner_id: str, target: Optional[bool]) -> ToggleResponse:
        is_open = self._service.toggle_group(liner_id, target)
        return ToggleResponse(id=liner_id, open=is_open)

    def toggle_ship(self, ship_id: str, target: Optional[bool]) -> ToggleResponse:
        """Toggle a ship; opening starts (or joins) its detail fetch."""
        self._service.toggle_item(ship_id, target)
        ship = self._service.tree.get_item(ship_id)
        return ToggleResponse(
            id=ship_id,
            open=ship.open,
            detail_state=self._service.detail_state(ship_id),
        )

    async def details(self, ship_id: str) -> DetailResponse:
        """Wait for a ship's inspection rows."""
        result = await self._service.ensure_details(ship_id)
        return DetailResponse.from_result(ship_id, result, self._service.detail_state(ship_id))

    def apply_filter(self, query: str) -> FilterResponse:
        result = self._service.apply_filter(query)
        return FilterResponse(filter=FilterView.from_result(result))

    def clear_filter(self) -> FilterResponse:
        result = self._service.clear_filter()
        return FilterResponse(filter=FilterView.from_result(result))


@router.get("", response_model=TreeSnapshot)
async def get_tree(service: BrowseService = Depends(get_loaded_browse_service)):
    """Get the browse tree snapshot."""
    return CatalogController(service).snapshot()


@router.post("/reload", response_model=ReloadResponse)
async def reload_catalog(service: BrowseService = Depends(get_browse_service)):
    """Reload the catalog; the whole tree and cache are rebuilt."""
    return await CatalogController(service).reload()


@router.post("/collapse", response_model=MessageResponse)
async def collapse_all(service: BrowseService = Depends(get_loaded_browse_service)):
    """Close every liner and ship."""
    return CatalogController(service).collapse()


@router.post("/liners/{liner_id}/toggle", response_model=ToggleResponse)
async def toggle_liner(
    liner_id: str,
    body: Optional[ToggleRequest] = None,
    service: BrowseService = Depends(get_loaded_browse_service)
):
    """Open or close a liner. Closing collapses its ships."""
    return CatalogController(service).toggle_liner(liner_id, body.open if body else None)


@router.post("/ships/{ship_id}/toggle", response_model=ToggleResponse)
async def toggle_ship(
    ship_id: str,
    body: Optional[ToggleRequest] = None,
    service: BrowseService = Depends(get_loaded_browse_service)
):
    """Open or close a ship shown by the current filter."""
    return CatalogController(service).toggle_ship(ship_id, body.open if body else None)


@router.get("/ships/{ship_id}/details", response_model=DetailResponse)
async def get_ship_details(
    ship_id: str,
    service: BrowseService = Depends(get_loaded_browse_service)
):
    """Get inspection scores, fetching them on first use."""
    return await CatalogController(service).details(ship_id)


@router.post("/filter", response_model=FilterResponse)
async def apply_filter(
    body: FilterRequest,
    service: BrowseService = Depends(get_loaded_browse_service)
):
    """Filter liners and ships by name."""
    return CatalogController(service).apply_filter(body.query)


@router.delete("/filter", response_model=FilterResponse)
async def clear_filter(service: BrowseService = Depends(get_loaded_browse_service)):
    """Clear the query; shows everything and collapses the tree."""
    return CatalogController(service).clear_filter()

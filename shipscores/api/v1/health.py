"""
==============================================================================
Health Check Endpoints
==============================================================================

System health status endpoints for monitoring and orchestration.

==============================================================================
"""

from fastapi import APIRouter, Depends

from shipscores.core.dependencies import get_browse_service
from shipscores.services import BrowseService


router = APIRouter(prefix="/health", tags=["Health"])


class HealthController:
    """Controller for health check operations."""

    def __init__(self, service: BrowseService):
        self._service = service

    def get_health(self) -> dict:
        """Get full health status."""
        stats = self._service.get_stats()
        catalog_status = "healthy" if stats["loaded"] else "not_loaded"

        return {
            "status": "healthy" if stats["loaded"] else "degraded",
            "components": {
                "api": "healthy",
                "catalog": catalog_status,
            },
            "details": stats,
        }


@router.get("")
async def health_check(service: BrowseService = Depends(get_browse_service)):
    """
    Health check endpoint.

    Returns API and catalog status with detail cache statistics.
    """
    return HealthController(service).get_health()


@router.get("/ready")
async def readiness_check(service: BrowseService = Depends(get_browse_service)):
    """Readiness probe: ready once a catalog has been loaded."""
    return {"ready": service.is_loaded}


@router.get("/live")
async def liveness_check():
    """Liveness probe for container orchestration."""
    return {"alive": True}

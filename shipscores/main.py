"""
==============================================================================
Ship Scores Browser - Application Entry Point
==============================================================================

FastAPI application serving a searchable liner/ship catalog with:
- RESTful browse, search and detail endpoints
- WebSocket browsing with pushed inspection rows
- Lazily fetched, deduplicated inspection score cache

Usage:
------
    # Development
    uvicorn shipscores.main:app --reload

    # Production
    uvicorn shipscores.main:app --host 0.0.0.0 --port 8000

==============================================================================
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shipscores.config import Settings, get_settings
from shipscores.core.exceptions import AppException, register_exception_handlers
from shipscores.api.router import api_router
from shipscores.services import BrowseService
from shipscores.sources import DataSource, create_source
from shipscores.websockets import browse_router


# ============================================================================
# LOGGING SETUP
# ============================================================================

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

logger = logging.getLogger(__name__)


# ============================================================================
# APPLICATION FACTORY
# ============================================================================

class Application:
    """
    FastAPI application factory and manager.

    Handles application lifecycle including:
    - Data source and browse session creation on startup
    - Initial catalog load
    - Middleware configuration
    - Router and exception handler registration
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        source: Optional[DataSource] = None
    ):
        """
        Initialize the application.

        Args:
            settings: Settings override (uses get_settings() if None)
            source: Data source override (built from settings if None)
        """
        self._settings = settings or get_settings()
        self._source = source
        self._app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""
        app = FastAPI(
            title=self._settings.app_name,
            version="1.0.0",
            description="Searchable cruise liner catalog with lazily loaded ship inspection scores",
            lifespan=self._lifespan,
            docs_url="/docs",
            redoc_url="/redoc",
        )

        self._configure_middleware(app)
        register_exception_handlers(app)
        self._register_routers(app)

        return app

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Application lifespan manager."""
        await self._startup(app)
        yield
        await self._shutdown(app)

    async def _startup(self, app: FastAPI) -> None:
        """Application startup tasks."""
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {self._settings.app_name}")
        logger.info("=" * 60)

        source = self._source or create_source(self._settings)
        service = BrowseService(source)
        app.state.browse_service = service

        if self._settings.load_on_startup:
            await self._load_catalog(service)

        logger.info(f"✅ {self._settings.app_name} ready ({source.name} source)")
        logger.info(f"📖 API Docs: http://{self._settings.host}:{self._settings.port}/docs")

    async def _shutdown(self, app: FastAPI) -> None:
        """Application shutdown tasks."""
        logger.info("🛑 Shutting down...")
        service = getattr(app.state, "browse_service", None)
        if service is not None:
            await service.source.close()
        logger.info("✅ Shutdown complete")

    async def _load_catalog(self, service: BrowseService) -> None:
        """Initial catalog load; the API stays up if it fails."""
        try:
            report = await service.load()
            if report.skipped:
                logger.warning(f"⚠️ Skipped {report.skipped} malformed catalog entries")
        except AppException as e:
            logger.error(f"❌ Failed to load catalog: {e.message}")

    def _configure_middleware(self, app: FastAPI) -> None:
        """Configure application middleware."""
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self._settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _register_routers(self, app: FastAPI) -> None:
        """Register API and WebSocket routers."""
        app.include_router(api_router)
        app.include_router(browse_router)

    @property
    def app(self) -> FastAPI:
        """Get the FastAPI application instance."""
        return self._app


# ============================================================================
# APPLICATION INSTANCE
# ============================================================================

application = Application()
app = application.app


# ============================================================================
# ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shipscores.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level="debug" if settings.debug else "info"
    )

"""
Application Exception Handling

Single AppException class for all application errors with FastAPI integration.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class AppException(Exception):
    """
    Unified application exception for all error scenarios.

    Provides consistent error response format across the entire API.

    Usage:
        raise AppException("Ship not found", "NODE_NOT_FOUND", 404, {"ship_id": "x"})

    Error Codes:
        Catalog tree:
            - NODE_NOT_FOUND (404)
            - NODE_HIDDEN (409)

        Catalog lifecycle:
            - CATALOG_NOT_LOADED (503)
            - CATALOG_LOAD_FAILED (502)

    Detail fetch failures are not exceptions: they surface as
    ``{"rows": [], "error": true}`` results.
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "NODE_NOT_FOUND")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error_dict = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Convert AppException to a consistent JSON error response."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

def node_not_found(kind: str, node_id: str) -> AppException:
    """Create unknown liner/ship exception."""
    return AppException(
        f"{kind.capitalize()} '{node_id}' not found",
        "NODE_NOT_FOUND",
        404,
        {"kind": kind, "id": node_id}
    )


def node_hidden(kind: str, node_id: str, reason: str) -> AppException:
    """Create exception for toggling a node that is not on screen."""
    return AppException(
        f"{kind.capitalize()} '{node_id}' cannot be opened: {reason}",
        "NODE_HIDDEN",
        409,
        {"kind": kind, "id": node_id, "reason": reason}
    )


def catalog_not_loaded() -> AppException:
    """Create catalog not loaded exception."""
    return AppException(
        "Ship catalog not loaded",
        "CATALOG_NOT_LOADED",
        503
    )


def catalog_load_failed(reason: str) -> AppException:
    """Create catalog load failure exception."""
    return AppException(
        f"Ship catalog could not be loaded: {reason}",
        "CATALOG_LOAD_FAILED",
        502,
        {"reason": reason}
    )

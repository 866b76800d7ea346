"""
==============================================================================
WebSocket Package
==============================================================================

Real-time WebSocket handlers.

Handlers:
---------
- browse: Interactive tree browsing with pushed inspection rows

==============================================================================
"""

from .browse import router as browse_router

__all__ = ["browse_router"]

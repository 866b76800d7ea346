"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- catalog: Browse tree, search and inspection details

==============================================================================
"""

from . import health, catalog

__all__ = ["health", "catalog"]

"""
==============================================================================
Core Package
==============================================================================

Core infrastructure for the application.

Modules:
--------
- exceptions: AppException class and error factory functions
- dependencies: FastAPI dependency functions

Usage:
------
    from shipscores.core import exceptions
    raise exceptions.node_not_found("ship", "abc")

==============================================================================
"""

from .exceptions import (
    AppException,
    register_exception_handlers,
)

__all__ = [
    "AppException",
    "register_exception_handlers",
]

"""
==============================================================================
Configuration Package
==============================================================================

Centralized configuration management using Pydantic Settings.

Usage:
------
    from shipscores.config import get_settings, Settings

    settings = get_settings()
    print(settings.data_source)

==============================================================================
"""

from .settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]

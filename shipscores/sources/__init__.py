"""
==============================================================================
Sources Package - Catalog Data Adapters
==============================================================================

Backends feeding the browse session with liners, ships and inspection rows.

Classes:
--------
- DataSource: Abstract adapter interface
- LocalJsonSource: JSON files on disk
- DataverseSource: Dataverse Web API (FetchXML over httpx)

==============================================================================
"""

from shipscores.config import Settings

from .base import DataSource, SourceError
from .local import LocalJsonSource
from .dataverse import DataverseSource


def create_source(settings: Settings) -> DataSource:
    """Build the data source selected by ``settings.data_source``."""
    if settings.data_source == "dataverse":
        return DataverseSource(
            base_url=settings.dataverse_base_url,
            catalog_fetch_xml=settings.dataverse_catalog_fetch_xml,
            details_fetch_xml=settings.dataverse_details_fetch_xml,
            token=settings.dataverse_token,
            method=settings.dataverse_method,
            max_pages=settings.odata_max_pages,
            timeout=settings.request_timeout_seconds,
        )
    return LocalJsonSource(settings.catalog_path, settings.details_path)


__all__ = [
    "DataSource",
    "SourceError",
    "LocalJsonSource",
    "DataverseSource",
    "create_source",
]

"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management for the ship scores browser using Pydantic Settings.

A single global configuration instance is shared through ``get_settings()``.

Features:
---------
- Environment variable loading with type validation
- .env file support for local development
- Computed properties for derived values
- Data source selection (local JSON files or Dataverse Web API)

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


DEFAULT_CATALOG_FETCH_XML = (
    '<fetch version="1.0" output-format="xml-platform" mapping="logical" distinct="true">'
    '  <entity name="account">'
    '    <attribute name="name" />'
    '    <attribute name="accountid" />'
    '    <order attribute="name" />'
    '    <link-entity name="ship" from="accountid" to="accountid" link-type="outer" alias="ship">'
    '      <attribute name="shipid" />'
    '      <attribute name="name" />'
    '    </link-entity>'
    '  </entity>'
    '</fetch>'
)

DEFAULT_DETAILS_FETCH_XML = (
    '<fetch version="1.0" output-format="xml-platform" mapping="logical">'
    '  <entity name="inspection">'
    '    <attribute name="inspectiondate" />'
    '    <attribute name="score" />'
    '    <order attribute="inspectiondate" descending="true" />'
    '    <filter type="and">'
    '      <condition attribute="shipid" operator="eq" value="{ship_id}" />'
    '    </filter>'
    '  </entity>'
    '</fetch>'
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        cors_origins: Allowed CORS origins (JSON array string)
        data_source: Which adapter feeds the catalog ("local" or "dataverse")
        catalog_file: Liner/ship catalog JSON for the local source
        details_file: Inspection score JSON for the local source
        dataverse_base_url: Portal root serving /_api/retrieveMultiple
        dataverse_token: Optional bearer token for the Web API
        dataverse_method: POST (default) or GET for FetchXML queries
        dataverse_catalog_fetch_xml: FetchXML returning liners joined to ships
        dataverse_details_fetch_xml: FetchXML template with a {ship_id} slot
        odata_max_pages: Upper bound on followed @odata.nextLink pages
        request_timeout_seconds: HTTP timeout for remote sources
        load_on_startup: Load the catalog during application startup

    Example:
        >>> settings = Settings()
        >>> settings.data_source
        'local'
    """

    # =========================================================================
    # PYDANTIC SETTINGS CONFIGURATION
    # =========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="Ship Scores Browser",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # DATA SOURCE SETTINGS
    # =========================================================================
    data_source: str = Field(
        default="local",
        description="Catalog data source: local or dataverse"
    )

    catalog_file: str = Field(
        default="data/catalog.json",
        description="Path to liner/ship catalog JSON"
    )

    details_file: str = Field(
        default="data/details.json",
        description="Path to inspection score JSON keyed by ship id"
    )

    dataverse_base_url: str = Field(
        default="http://localhost",
        description="Portal base URL serving the Dataverse Web API"
    )

    dataverse_token: Optional[str] = Field(
        default=None,
        description="Bearer token sent with Web API requests"
    )

    dataverse_method: str = Field(
        default="POST",
        description="HTTP method used for FetchXML queries"
    )

    dataverse_catalog_fetch_xml: str = Field(
        default=DEFAULT_CATALOG_FETCH_XML,
        description="FetchXML for liners joined to their ships"
    )

    dataverse_details_fetch_xml: str = Field(
        default=DEFAULT_DETAILS_FETCH_XML,
        description="FetchXML template for one ship's inspections"
    )

    odata_max_pages: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum number of OData pages followed per query"
    )

    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Timeout for remote data source requests"
    )

    load_on_startup: bool = Field(
        default=True,
        description="Load the catalog when the application starts"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """Normalize the environment name, falling back to development."""
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("data_source")
    @classmethod
    def validate_data_source(cls, value: str) -> str:
        """
        Validate the data source name.

        Raises:
            ValueError: If the source is not recognized
        """
        supported = {"local", "dataverse"}
        normalized = value.lower().strip()

        if normalized not in supported:
            raise ValueError(
                f"Unsupported data source: {value}. "
                f"Supported: {', '.join(sorted(supported))}"
            )

        return normalized

    @field_validator("dataverse_method")
    @classmethod
    def validate_dataverse_method(cls, value: str) -> str:
        """Only GET and POST are understood by retrieveMultiple."""
        normalized = value.upper().strip()
        if normalized not in {"GET", "POST"}:
            raise ValueError(f"Unsupported FetchXML method: {value}")
        return normalized

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def catalog_path(self) -> Path:
        """Catalog JSON file as a Path object."""
        return Path(self.catalog_file)

    @property
    def details_path(self) -> Path:
        """Details JSON file as a Path object."""
        return Path(self.details_file)

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS origins from JSON string to list.

        Returns:
            List of allowed origin strings
        """
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"data_source={self.data_source!r}, "
            f"debug={self.debug})"
        )


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    Uses lru_cache so only one Settings instance is created for the
    lifetime of the process.

    Returns:
        Global Settings instance
    """
    settings = Settings()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings

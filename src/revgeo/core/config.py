"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
``get_settings()`` builds a fresh instance on every call, so provider enablement,
credentials, and the primary/fallback selection reflect the current environment.
"""

import re
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="PostgreSQL+PostGIS async connection string",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # Geocoding — provider selection
    geocoder_primary_provider: str = Field(
        default="nominatim",
        min_length=1,
        description="Primary reverse geocoding provider (nominatim, googlemaps, mapbox, photon)",
    )
    geocoder_fallback_provider: str | None = Field(
        default=None,
        description="Optional fallback provider; blank or equal to the primary disables fallback",
    )

    # Geocoding — cache
    geocoder_cache_backend: Literal["postgis", "memory"] = Field(
        default="postgis",
        description="Spatial cache store backend",
    )
    geocoder_cache_tolerance_meters: float = Field(
        default=50.0,
        description="Distance within which a cached result satisfies a new coordinate",
        ge=0,
    )
    geocoder_cache_batch_chunk_size: int = Field(
        default=10_000,
        description="Maximum points per physical batch cache query",
        gt=0,
        le=15_000,
    )
    geocoder_miss_concurrency: int = Field(
        default=5,
        description="Maximum concurrent provider calls while resolving batch cache misses",
        gt=0,
    )
    geocoder_synthetic_bbox_meters: float = Field(
        default=10.0,
        description="Half-size of the bounding box synthesized when a provider reports none",
        gt=0,
    )

    # Geocoding — Nominatim (OpenStreetMap)
    geocoder_nominatim_enabled: bool = Field(
        default=True,
        description="Enable Nominatim (OpenStreetMap) reverse geocoder",
    )
    geocoder_nominatim_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Nominatim base URL (self-hostable)",
    )
    geocoder_nominatim_email: str = Field(
        default="",
        description="Email for Nominatim usage policy compliance",
    )
    geocoder_nominatim_timeout: float = Field(
        default=10.0,
        description="Nominatim request timeout in seconds",
        gt=0,
    )

    # Geocoding — Google Maps
    geocoder_googlemaps_enabled: bool = Field(
        default=False,
        description="Enable Google Maps reverse geocoder (requires API key)",
    )
    geocoder_googlemaps_api_key: str | None = Field(
        default=None,
        description="Google Maps Geocoding API key",
    )
    geocoder_googlemaps_timeout: float = Field(
        default=10.0,
        description="Google Maps request timeout in seconds",
        gt=0,
    )

    # Geocoding — Mapbox
    geocoder_mapbox_enabled: bool = Field(
        default=False,
        description="Enable Mapbox reverse geocoder (requires access token)",
    )
    geocoder_mapbox_api_key: str | None = Field(
        default=None,
        description="Mapbox access token",
    )
    geocoder_mapbox_timeout: float = Field(
        default=10.0,
        description="Mapbox request timeout in seconds",
        gt=0,
    )

    # Geocoding — Photon (Komoot)
    geocoder_photon_enabled: bool = Field(
        default=True,
        description="Enable Photon (Komoot) reverse geocoder",
    )
    geocoder_photon_base_url: str = Field(
        default="https://photon.komoot.io",
        description="Photon geocoder base URL (self-hostable)",
    )
    geocoder_photon_timeout: float = Field(
        default=10.0,
        description="Photon request timeout in seconds",
        gt=0,
    )

    @property
    def geocoder_effective_fallback(self) -> str | None:
        """Return the fallback provider name, or None when no distinct fallback is configured."""
        fallback = (self.geocoder_fallback_provider or "").strip()
        if not fallback or fallback.lower() == self.geocoder_primary_provider.strip().lower():
            return None
        return fallback

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]

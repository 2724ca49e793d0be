"""Pydantic v2 schemas for cached locations and cache administration."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from revgeo.lib.geocoder.base import CachedLocation
from revgeo.schemas.common import PaginationMeta


class CachedLocationResponse(BaseModel):
    """Response schema for a cached reverse geocoding location."""

    id: uuid.UUID
    request_longitude: float
    request_latitude: float
    result_longitude: float
    result_latitude: float
    bounding_box: tuple[float, float, float, float] = Field(
        description="min_longitude, min_latitude, max_longitude, max_latitude"
    )
    display_name: str
    city: str | None = None
    country: str | None = None
    provider_name: str
    created_at: datetime
    last_accessed_at: datetime

    @classmethod
    def from_location(cls, location: CachedLocation) -> "CachedLocationResponse":
        min_lon, min_lat, max_lon, max_lat = location.bounding_box.bounds
        return cls(
            id=location.id,
            request_longitude=location.request_coordinate.longitude,
            request_latitude=location.request_coordinate.latitude,
            result_longitude=location.result_coordinate.longitude,
            result_latitude=location.result_coordinate.latitude,
            bounding_box=(min_lon, min_lat, max_lon, max_lat),
            display_name=location.display_name,
            city=location.city,
            country=location.country,
            provider_name=location.provider_name,
            created_at=location.created_at,
            last_accessed_at=location.last_accessed_at,
        )


class PaginatedLocationsResponse(BaseModel):
    """Paginated list of cached locations."""

    items: list[CachedLocationResponse]
    pagination: PaginationMeta


class CacheProviderStats(BaseModel):
    """Per-provider cache statistics."""

    provider: str
    cached_count: int
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None
    last_accessed: datetime | None = None


class CacheStatsResponse(BaseModel):
    """Response for reverse geocoding cache statistics."""

    providers: list[CacheProviderStats]
    total_count: int = 0
    recent_count: int = Field(default=0, description="Entries created in the trailing window")
    recent_days: int = 7

"""Reverse geocoding service — the operations exposed to callers and the operator CLI.

Wires the spatial cache store, provider orchestrator, and batch resolver
together from settings, and adds the administrative views of the cache.
"""

import math
import uuid
from collections.abc import Callable, Iterable, Sequence

from loguru import logger

from revgeo.core.background import BackgroundTaskRunner
from revgeo.core.config import Settings, get_settings
from revgeo.lib.geocoder.base import GeoPoint, PlaceResult, ResolutionStatus
from revgeo.lib.geocoder.batch import BatchResolver
from revgeo.lib.geocoder.cache import BaseLocationStore
from revgeo.lib.geocoder.failover import GeocodingProviderFactory
from revgeo.lib.geocoder.memory_store import InMemoryLocationStore
from revgeo.lib.geocoder.postgis_store import PostgisLocationStore
from revgeo.schemas.common import PaginationMeta
from revgeo.schemas.geocoding import (
    CachedLocationResponse,
    CacheProviderStats,
    CacheStatsResponse,
    PaginatedLocationsResponse,
)

RECENT_WINDOW_DAYS = 7


class ReverseGeocodingService:
    """Cache-first reverse geocoding with provider failover and cache administration.

    Args:
        store: Spatial cache store.
        orchestrator: Provider orchestrator.
        tolerance_meters: Cache match distance in meters.
        miss_concurrency: Maximum concurrent provider calls during a batch.
    """

    def __init__(
        self,
        store: BaseLocationStore,
        orchestrator: GeocodingProviderFactory,
        *,
        tolerance_meters: float,
        miss_concurrency: int,
    ) -> None:
        self.store = store
        self.orchestrator = orchestrator
        self.tolerance_meters = tolerance_meters
        self._resolver = BatchResolver(store, orchestrator, tolerance_meters, concurrency=miss_concurrency)

    # --- Resolution ---------------------------------------------------------

    async def reverse_geocode(self, point: GeoPoint) -> PlaceResult:
        """Resolve one coordinate, cache first, with provider failover on a miss."""
        return await self._resolver.resolve(point)

    async def reverse_geocode_batch(self, points: Iterable[GeoPoint]) -> dict[GeoPoint, PlaceResult]:
        """Resolve many coordinates with one batch cache lookup; see ``BatchResolver.resolve_many``."""
        return await self._resolver.resolve_many(points)

    async def reconcile_with_provider(self, provider_name: str, point: GeoPoint) -> PlaceResult:
        """Re-resolve a coordinate with one named provider and cache the result as a new entry.

        The cache is not consulted and no fallback is attempted.

        Raises:
            UnknownProviderError: If the name is not registered.
            ProviderDisabledError: If the provider is not currently enabled.
            GeocodingProviderError: If the provider call fails.
        """
        place = await self.orchestrator.reconcile_with_provider(provider_name, point)
        if place is None:
            return PlaceResult(point=point, status=ResolutionStatus.NOT_FOUND)

        result = PlaceResult(
            point=point,
            status=ResolutionStatus.RESOLVED,
            place=place,
            provider_name=place.provider_name,
        )
        try:
            result.location = await self.store.store(point, place)
        except Exception:
            logger.exception(f"Failed to cache reconciled {place.provider_name} result")
        return result

    def list_enabled_providers(self) -> list[str]:
        """Return display names of providers enabled right now."""
        return self.orchestrator.list_enabled_providers()

    # --- Administration -----------------------------------------------------

    async def list_locations(
        self,
        *,
        provider_name: str | None = None,
        search_text: str | None = None,
        page: int = 1,
        page_size: int = 50,
        sort_field: str | None = None,
        sort_order: str | None = None,
    ) -> PaginatedLocationsResponse:
        """List cached locations with filters, sorting, and pagination metadata."""
        page = max(page, 1)
        locations = await self.store.list_locations(
            provider_name=provider_name,
            search_text=search_text,
            page=page,
            page_size=page_size,
            sort_field=sort_field,
            sort_order=sort_order,
        )
        total = await self.store.count_locations(provider_name=provider_name, search_text=search_text)
        return PaginatedLocationsResponse(
            items=[CachedLocationResponse.from_location(loc) for loc in locations],
            pagination=PaginationMeta(
                total=total,
                page=page,
                page_size=page_size,
                total_pages=math.ceil(total / page_size) if page_size else 0,
            ),
        )

    async def get_location(self, location_id: uuid.UUID) -> CachedLocationResponse | None:
        location = await self.store.get_location(location_id)
        return CachedLocationResponse.from_location(location) if location is not None else None

    async def find_by_exact_coordinates(self, point: GeoPoint) -> CachedLocationResponse | None:
        location = await self.store.find_by_exact_coordinates(point)
        return CachedLocationResponse.from_location(location) if location is not None else None

    async def find_by_ids(self, location_ids: Sequence[uuid.UUID]) -> list[CachedLocationResponse]:
        return [CachedLocationResponse.from_location(loc) for loc in await self.store.find_by_ids(location_ids)]

    async def find_ids(self, *, provider_name: str | None = None) -> list[uuid.UUID]:
        return await self.store.find_ids(provider_name=provider_name)

    async def count_locations(self, *, provider_name: str | None = None, search_text: str | None = None) -> int:
        return await self.store.count_locations(provider_name=provider_name, search_text=search_text)

    async def count_by_provider(self) -> dict[str, int]:
        return await self.store.count_by_provider()

    async def count_recent(self, days: int = RECENT_WINDOW_DAYS) -> int:
        return await self.store.count_recent(days)

    async def distinct_provider_names(self) -> list[str]:
        return await self.store.distinct_provider_names()

    async def delete_locations(self, location_ids: Sequence[uuid.UUID]) -> int:
        """Delete cached locations by id.

        Returns:
            Number of records removed.
        """
        deleted = await self.store.delete_locations(location_ids)
        logger.info(f"Deleted {deleted} cached location(s)")
        return deleted

    async def get_cache_stats(self, recent_days: int = RECENT_WINDOW_DAYS) -> CacheStatsResponse:
        """Return per-provider cache statistics plus total and recent counts."""
        stats = await self.store.cache_stats()
        return CacheStatsResponse(
            providers=[
                CacheProviderStats(
                    provider=s.provider_name,
                    cached_count=s.cached_count,
                    oldest_entry=s.oldest_entry,
                    newest_entry=s.newest_entry,
                    last_accessed=s.last_accessed,
                )
                for s in stats
            ],
            total_count=sum(s.cached_count for s in stats),
            recent_count=await self.store.count_recent(recent_days),
            recent_days=recent_days,
        )


def build_store(settings: Settings, runner: BackgroundTaskRunner | None = None) -> BaseLocationStore:
    """Create the configured cache store backend.

    The PostGIS backend uses the module-level session factory, so
    ``init_engine`` must have been called first.
    """
    options = {
        "batch_chunk_size": settings.geocoder_cache_batch_chunk_size,
        "synthetic_bbox_meters": settings.geocoder_synthetic_bbox_meters,
    }
    if settings.geocoder_cache_backend == "memory":
        return InMemoryLocationStore(runner, **options)

    from revgeo.core.database import get_session_factory

    return PostgisLocationStore(get_session_factory(), runner, **options)


def build_service(
    settings: Settings | None = None,
    *,
    settings_getter: Callable[[], Settings] = get_settings,
    runner: BackgroundTaskRunner | None = None,
) -> ReverseGeocodingService:
    """Build a ReverseGeocodingService from settings.

    Cache and concurrency options are fixed at construction; provider
    selection and enablement are re-read through ``settings_getter`` on each call.
    """
    settings = settings or settings_getter()
    return ReverseGeocodingService(
        build_store(settings, runner),
        GeocodingProviderFactory(settings_getter=settings_getter),
        tolerance_meters=settings.geocoder_cache_tolerance_meters,
        miss_concurrency=settings.geocoder_miss_concurrency,
    )

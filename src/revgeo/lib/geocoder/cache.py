"""Spatial cache store for reverse geocoding results.

A cached result satisfies a query point when the point lies within the
tolerance (geodesic meters, inclusive) of the record's result coordinate or
its request coordinate, or strictly inside the record's bounding box. Among
matching records the most recently accessed one wins.

Concrete backends implement the query primitives; this module owns the
behavior shared by all of them: recency bookkeeping on hits, chunked batch
lookups, and building new cache entries.
"""

import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger

from revgeo.core.background import BackgroundTaskRunner, task_runner
from revgeo.lib.geocoder.base import CachedLocation, GeoPoint, ReverseGeocodingResult
from revgeo.lib.geocoder.spatial import bounding_box_around

DEFAULT_BATCH_CHUNK_SIZE = 10_000
DEFAULT_SYNTHETIC_BBOX_METERS = 10.0

# Public sort keys accepted by list_locations (case-insensitive) -> attribute name
SORT_FIELDS: dict[str, str] = {
    "displayname": "display_name",
    "display_name": "display_name",
    "city": "city",
    "country": "country",
    "providername": "provider_name",
    "provider_name": "provider_name",
    "createdat": "created_at",
    "created_at": "created_at",
    "lastaccessedat": "last_accessed_at",
    "last_accessed_at": "last_accessed_at",
}
DEFAULT_SORT_FIELD = "last_accessed_at"


def resolve_sort(sort_field: str | None, sort_order: str | None) -> tuple[str, bool]:
    """Map user-supplied sort options to ``(attribute, descending)``.

    Unknown or blank fields sort by ``last_accessed_at``; any order other than
    ``asc`` sorts descending.
    """
    attribute = SORT_FIELDS.get((sort_field or "").strip().lower(), DEFAULT_SORT_FIELD)
    descending = (sort_order or "").strip().lower() != "asc"
    return attribute, descending


@dataclass
class ProviderCacheStats:
    """Per-provider cache statistics."""

    provider_name: str
    cached_count: int
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None
    last_accessed: datetime | None = None


def build_cache_entry(
    request_point: GeoPoint,
    result: ReverseGeocodingResult,
    *,
    synthetic_bbox_meters: float = DEFAULT_SYNTHETIC_BBOX_METERS,
    now: datetime | None = None,
) -> CachedLocation:
    """Build a new cache record for a fresh provider result.

    Uses the provider's bounding box when it reported one, otherwise a
    minimal square box around the result point so containment lookups stay
    well-defined.

    Args:
        request_point: The coordinate originally queried.
        result: The provider's structured result.
        synthetic_bbox_meters: Half-size of the synthesized box.
        now: Creation timestamp (defaults to the current UTC time).

    Returns:
        A CachedLocation with ``created_at == last_accessed_at``.
    """
    created_at = now or datetime.now(UTC)
    bbox = result.bounding_box or bounding_box_around(result.point, synthetic_bbox_meters)
    return CachedLocation(
        request_coordinate=request_point,
        result_coordinate=result.point,
        bounding_box=bbox.to_polygon(),
        display_name=result.display_name,
        city=result.city,
        country=result.country,
        provider_name=result.provider_name,
        created_at=created_at,
        last_accessed_at=created_at,
    )


class BaseLocationStore(ABC):
    """Spatial cache store shared behavior.

    Args:
        runner: Background runner for fire-and-forget recency updates.
        batch_chunk_size: Maximum distinct points per physical batch query.
        synthetic_bbox_meters: Half-size of boxes synthesized by ``store``.
    """

    def __init__(
        self,
        runner: BackgroundTaskRunner | None = None,
        *,
        batch_chunk_size: int = DEFAULT_BATCH_CHUNK_SIZE,
        synthetic_bbox_meters: float = DEFAULT_SYNTHETIC_BBOX_METERS,
    ) -> None:
        if batch_chunk_size <= 0:
            msg = f"batch_chunk_size must be positive, got {batch_chunk_size}"
            raise ValueError(msg)
        self._runner = runner or task_runner
        self._batch_chunk_size = batch_chunk_size
        self._synthetic_bbox_meters = synthetic_bbox_meters

    # --- Hot path -----------------------------------------------------------

    async def find_nearest(self, point: GeoPoint, tolerance_meters: float) -> CachedLocation | None:
        """Find the most recently accessed cached record matching a point.

        A hit schedules a detached recency update; the read never waits on it.

        Args:
            point: Query coordinate.
            tolerance_meters: Match distance in meters (inclusive).

        Returns:
            The best matching CachedLocation, or None on a miss.
        """
        location = await self._query_nearest(point, tolerance_meters)
        if location is None:
            logger.debug(f"No cached location for {point} within {tolerance_meters}m")
            return None

        logger.debug(f"Cached location hit for {point} (provider={location.provider_name})")
        self._schedule_touch([location.id])
        return location

    async def find_batch(
        self,
        points: Iterable[GeoPoint],
        tolerance_meters: float,
    ) -> dict[GeoPoint, CachedLocation]:
        """Match many points against the cache without one query per point.

        Distinct input points are split into chunks of at most
        ``batch_chunk_size``; each chunk is matched in a single query and the
        per-chunk results are unioned. Points without a match are absent from
        the result.

        Args:
            points: Query coordinates (duplicates allowed).
            tolerance_meters: Match distance in meters (inclusive).

        Returns:
            Mapping of each matched input point to its cached record.
        """
        distinct = list(dict.fromkeys(points))
        if not distinct:
            return {}

        matches: dict[GeoPoint, CachedLocation] = {}
        for start in range(0, len(distinct), self._batch_chunk_size):
            chunk = distinct[start : start + self._batch_chunk_size]
            matches.update(await self._query_batch_chunk(chunk, tolerance_meters))

        logger.debug(f"Batch cache lookup matched {len(matches)} of {len(distinct)} coordinates")
        if matches:
            self._schedule_touch(list({location.id: None for location in matches.values()}))
        return matches

    async def store(self, request_point: GeoPoint, result: ReverseGeocodingResult) -> CachedLocation:
        """Persist a freshly resolved result as a new record (append-only).

        Args:
            request_point: The coordinate originally queried.
            result: The provider's structured result.

        Returns:
            The stored CachedLocation.
        """
        entry = build_cache_entry(request_point, result, synthetic_bbox_meters=self._synthetic_bbox_meters)
        await self._insert(entry)
        logger.debug(f"Cached {entry.provider_name} result for {request_point} as {entry.id}")
        return entry

    def _schedule_touch(self, location_ids: list[uuid.UUID]) -> None:
        """Bump ``last_accessed_at`` in a detached task; failures are logged and discarded."""

        async def _touch() -> None:
            try:
                await self.touch_many(location_ids)
            except Exception as e:
                logger.debug(f"Failed to update access timestamp for {len(location_ids)} location(s): {e}")

        self._runner.submit_task(_touch(), name="cache-touch")

    # --- Backend primitives -------------------------------------------------

    @abstractmethod
    async def _query_nearest(self, point: GeoPoint, tolerance_meters: float) -> CachedLocation | None:
        """Return the best match for one point without side effects."""

    @abstractmethod
    async def _query_batch_chunk(
        self,
        points: Sequence[GeoPoint],
        tolerance_meters: float,
    ) -> dict[GeoPoint, CachedLocation]:
        """Return the best match for each point of one chunk using a single query."""

    @abstractmethod
    async def _insert(self, entry: CachedLocation) -> None:
        """Insert a new record."""

    @abstractmethod
    async def touch_many(self, location_ids: Sequence[uuid.UUID]) -> None:
        """Set ``last_accessed_at`` to now for the given records in its own unit of work."""

    # --- Administrative reads and deletion -----------------------------------

    @abstractmethod
    async def get_location(self, location_id: uuid.UUID) -> CachedLocation | None:
        """Return a record by id."""

    @abstractmethod
    async def find_by_ids(self, location_ids: Sequence[uuid.UUID]) -> list[CachedLocation]:
        """Return the records with the given ids (empty input returns an empty list)."""

    @abstractmethod
    async def find_by_exact_coordinates(self, point: GeoPoint) -> CachedLocation | None:
        """Return a record whose request coordinate equals the point exactly."""

    @abstractmethod
    async def list_locations(
        self,
        *,
        provider_name: str | None = None,
        search_text: str | None = None,
        page: int = 1,
        page_size: int = 50,
        sort_field: str | None = None,
        sort_order: str | None = None,
    ) -> list[CachedLocation]:
        """List records filtered by provider and free-text search, paginated (1-based)."""

    @abstractmethod
    async def count_locations(self, *, provider_name: str | None = None, search_text: str | None = None) -> int:
        """Count records matching the same filters as ``list_locations``."""

    @abstractmethod
    async def count_by_provider(self) -> dict[str, int]:
        """Count records grouped by provider name."""

    @abstractmethod
    async def count_recent(self, days: int) -> int:
        """Count records created within the trailing ``days`` days."""

    @abstractmethod
    async def distinct_provider_names(self) -> list[str]:
        """Return every provider name present in the cache, sorted."""

    @abstractmethod
    async def find_ids(self, *, provider_name: str | None = None) -> list[uuid.UUID]:
        """Return ids of all records, optionally limited to one provider."""

    @abstractmethod
    async def cache_stats(self) -> list[ProviderCacheStats]:
        """Return per-provider counts and timestamps."""

    @abstractmethod
    async def delete_locations(self, location_ids: Sequence[uuid.UUID]) -> int:
        """Delete records by id and return how many were removed."""

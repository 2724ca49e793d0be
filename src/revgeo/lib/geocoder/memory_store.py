"""In-process spatial cache store.

Evaluates the same predicates as the PostGIS backend (WGS84 geodesic
distance via pyproj, polygon containment via shapely) over a dict of
records. Used for development without a database and in tests.
"""

import dataclasses
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from shapely.geometry import Point

from revgeo.core.background import BackgroundTaskRunner
from revgeo.lib.geocoder.base import CachedLocation, GeoPoint
from revgeo.lib.geocoder.cache import (
    DEFAULT_BATCH_CHUNK_SIZE,
    DEFAULT_SYNTHETIC_BBOX_METERS,
    BaseLocationStore,
    ProviderCacheStats,
    resolve_sort,
)
from revgeo.lib.geocoder.spatial import geodesic_distance_meters


def _recency_key(location: CachedLocation) -> tuple[datetime, datetime, uuid.UUID]:
    return (location.last_accessed_at, location.created_at, location.id)


class InMemoryLocationStore(BaseLocationStore):
    """Spatial cache store backed by a dict keyed by record id."""

    def __init__(
        self,
        runner: BackgroundTaskRunner | None = None,
        *,
        batch_chunk_size: int = DEFAULT_BATCH_CHUNK_SIZE,
        synthetic_bbox_meters: float = DEFAULT_SYNTHETIC_BBOX_METERS,
    ) -> None:
        super().__init__(runner, batch_chunk_size=batch_chunk_size, synthetic_bbox_meters=synthetic_bbox_meters)
        self._entries: dict[uuid.UUID, CachedLocation] = {}
        self.query_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def _matches(location: CachedLocation, point: GeoPoint, tolerance_meters: float) -> bool:
        return (
            geodesic_distance_meters(point, location.result_coordinate) <= tolerance_meters
            or geodesic_distance_meters(point, location.request_coordinate) <= tolerance_meters
            or location.bounding_box.contains(Point(point.longitude, point.latitude))
        )

    def _best_match(self, point: GeoPoint, tolerance_meters: float) -> CachedLocation | None:
        candidates = [loc for loc in self._entries.values() if self._matches(loc, point, tolerance_meters)]
        if not candidates:
            return None
        return dataclasses.replace(max(candidates, key=_recency_key))

    async def _query_nearest(self, point: GeoPoint, tolerance_meters: float) -> CachedLocation | None:
        self.query_count += 1
        return self._best_match(point, tolerance_meters)

    async def _query_batch_chunk(
        self,
        points: Sequence[GeoPoint],
        tolerance_meters: float,
    ) -> dict[GeoPoint, CachedLocation]:
        self.query_count += 1
        matches: dict[GeoPoint, CachedLocation] = {}
        for point in points:
            best = self._best_match(point, tolerance_meters)
            if best is not None:
                matches[point] = best
        return matches

    async def _insert(self, entry: CachedLocation) -> None:
        self._entries[entry.id] = dataclasses.replace(entry)

    async def touch_many(self, location_ids: Sequence[uuid.UUID]) -> None:
        now = datetime.now(UTC)
        for location_id in location_ids:
            entry = self._entries.get(location_id)
            if entry is not None:
                entry.last_accessed_at = max(now, entry.created_at)

    async def get_location(self, location_id: uuid.UUID) -> CachedLocation | None:
        entry = self._entries.get(location_id)
        return dataclasses.replace(entry) if entry is not None else None

    async def find_by_ids(self, location_ids: Sequence[uuid.UUID]) -> list[CachedLocation]:
        return [dataclasses.replace(self._entries[i]) for i in dict.fromkeys(location_ids) if i in self._entries]

    async def find_by_exact_coordinates(self, point: GeoPoint) -> CachedLocation | None:
        for entry in self._entries.values():
            if entry.request_coordinate == point:
                return dataclasses.replace(entry)
        return None

    def _filtered(self, provider_name: str | None, search_text: str | None) -> list[CachedLocation]:
        entries = list(self._entries.values())
        if provider_name and provider_name.strip():
            entries = [e for e in entries if e.provider_name == provider_name]
        if search_text and search_text.strip():
            needle = search_text.lower()
            entries = [
                e
                for e in entries
                if any(needle in (value or "").lower() for value in (e.display_name, e.city, e.country))
            ]
        return entries

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
        attribute, descending = resolve_sort(sort_field, sort_order)
        entries = self._filtered(provider_name, search_text)
        # Nulls sort last regardless of direction
        present = [e for e in entries if getattr(e, attribute) is not None]
        missing = [e for e in entries if getattr(e, attribute) is None]
        present.sort(key=lambda e: getattr(e, attribute), reverse=descending)
        ordered = present + missing
        offset = (max(page, 1) - 1) * page_size
        return [dataclasses.replace(e) for e in ordered[offset : offset + page_size]]

    async def count_locations(self, *, provider_name: str | None = None, search_text: str | None = None) -> int:
        return len(self._filtered(provider_name, search_text))

    async def count_by_provider(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for entry in self._entries.values():
            counts[entry.provider_name] = counts.get(entry.provider_name, 0) + 1
        return counts

    async def count_recent(self, days: int) -> int:
        since = datetime.now(UTC) - timedelta(days=days)
        return sum(1 for entry in self._entries.values() if entry.created_at > since)

    async def distinct_provider_names(self) -> list[str]:
        return sorted({entry.provider_name for entry in self._entries.values()})

    async def find_ids(self, *, provider_name: str | None = None) -> list[uuid.UUID]:
        return [e.id for e in self._entries.values() if not provider_name or e.provider_name == provider_name]

    async def cache_stats(self) -> list[ProviderCacheStats]:
        grouped: dict[str, list[CachedLocation]] = {}
        for entry in self._entries.values():
            grouped.setdefault(entry.provider_name, []).append(entry)
        return [
            ProviderCacheStats(
                provider_name=name,
                cached_count=len(entries),
                oldest_entry=min(e.created_at for e in entries),
                newest_entry=max(e.created_at for e in entries),
                last_accessed=max(e.last_accessed_at for e in entries),
            )
            for name, entries in sorted(grouped.items())
        ]

    async def delete_locations(self, location_ids: Sequence[uuid.UUID]) -> int:
        removed = 0
        for location_id in dict.fromkeys(location_ids):
            if self._entries.pop(location_id, None) is not None:
                removed += 1
        return removed

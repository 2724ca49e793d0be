"""PostGIS-backed spatial cache store.

Proximity uses ``ST_DWithin`` on geography casts (WGS84 spheroid, meters);
containment uses ``ST_Contains`` on the stored bounding box. Batch lookups
join a ``VALUES`` list of input coordinates against the table and keep one
row per input with ``DISTINCT ON``, so each chunk is a single round trip.
"""

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from geoalchemy2 import Geography
from geoalchemy2.shape import from_shape, to_shape
from shapely.geometry import Point
from sqlalchemy import ColumnElement, Double, Select, cast, column, delete, func, or_, select, update, values
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from revgeo.core.background import BackgroundTaskRunner
from revgeo.lib.geocoder.base import CachedLocation, GeoPoint
from revgeo.lib.geocoder.cache import (
    DEFAULT_BATCH_CHUNK_SIZE,
    DEFAULT_SYNTHETIC_BBOX_METERS,
    BaseLocationStore,
    ProviderCacheStats,
    resolve_sort,
)
from revgeo.models.reverse_geocoding_location import ReverseGeocodingLocation

Location = ReverseGeocodingLocation

# Untyped geography: casts compile to plain "geography"
_GEOGRAPHY = Geography(geometry_type=None)

# Most recently accessed first; created_at and id make the order total
_RECENCY_ORDER = (Location.last_accessed_at.desc(), Location.created_at.desc(), Location.id.desc())


def make_point(longitude: ColumnElement | float, latitude: ColumnElement | float) -> ColumnElement:
    """Build an SRID 4326 point expression."""
    return func.ST_SetSRID(func.ST_MakePoint(longitude, latitude), 4326)


def match_clause(point: ColumnElement, tolerance_meters: float) -> ColumnElement[bool]:
    """Cache match predicate: near the result point, near the request point, or inside the box."""
    point_geog = cast(point, _GEOGRAPHY)
    return or_(
        func.ST_DWithin(cast(Location.result_coordinates, _GEOGRAPHY), point_geog, tolerance_meters),
        func.ST_DWithin(cast(Location.request_coordinates, _GEOGRAPHY), point_geog, tolerance_meters),
        func.ST_Contains(Location.bounding_box, point),
    )


def nearest_query(point: GeoPoint, tolerance_meters: float) -> Select:
    """Single-point lookup statement."""
    return (
        select(Location)
        .where(match_clause(make_point(point.longitude, point.latitude), tolerance_meters))
        .order_by(*_RECENCY_ORDER)
        .limit(1)
    )


def batch_query(points: Sequence[GeoPoint], tolerance_meters: float) -> Select:
    """Multi-point lookup statement returning ``(location, input_lon, input_lat)`` rows."""
    input_coords = values(
        column("input_lon", Double),
        column("input_lat", Double),
        name="input_coords",
    ).data([(p.longitude, p.latitude) for p in points])
    input_lon = input_coords.c.input_lon
    input_lat = input_coords.c.input_lat

    return (
        select(Location, input_lon, input_lat)
        .join(input_coords, match_clause(make_point(input_lon, input_lat), tolerance_meters))
        .distinct(input_lon, input_lat)
        .order_by(input_lon, input_lat, *_RECENCY_ORDER)
    )


def filtered_query(stmt: Select, provider_name: str | None, search_text: str | None) -> Select:
    """Apply the provider filter and case-insensitive free-text search."""
    if provider_name and provider_name.strip():
        stmt = stmt.where(Location.provider_name == provider_name)
    if search_text and search_text.strip():
        needle = search_text.lower()
        stmt = stmt.where(
            or_(
                func.lower(Location.display_name).contains(needle, autoescape=True),
                func.lower(Location.city).contains(needle, autoescape=True),
                func.lower(Location.country).contains(needle, autoescape=True),
            )
        )
    return stmt


def to_cached_location(row: ReverseGeocodingLocation) -> CachedLocation:
    """Convert an ORM row into the engine's CachedLocation."""
    request = to_shape(row.request_coordinates)
    result = to_shape(row.result_coordinates)
    return CachedLocation(
        id=row.id,
        request_coordinate=GeoPoint(request.x, request.y),
        result_coordinate=GeoPoint(result.x, result.y),
        bounding_box=to_shape(row.bounding_box),
        display_name=row.display_name,
        city=row.city,
        country=row.country,
        provider_name=row.provider_name,
        created_at=row.created_at,
        last_accessed_at=row.last_accessed_at,
    )


def to_row(entry: CachedLocation) -> ReverseGeocodingLocation:
    """Convert a CachedLocation into a new ORM row."""
    return ReverseGeocodingLocation(
        id=entry.id,
        request_coordinates=from_shape(
            Point(entry.request_coordinate.longitude, entry.request_coordinate.latitude), srid=4326
        ),
        result_coordinates=from_shape(
            Point(entry.result_coordinate.longitude, entry.result_coordinate.latitude), srid=4326
        ),
        bounding_box=from_shape(entry.bounding_box, srid=4326),
        display_name=entry.display_name,
        city=entry.city,
        country=entry.country,
        provider_name=entry.provider_name,
        created_at=entry.created_at,
        last_accessed_at=entry.last_accessed_at,
    )


class PostgisLocationStore(BaseLocationStore):
    """Spatial cache store on PostgreSQL + PostGIS.

    Every operation runs in its own session, so the recency update triggered
    by a hit never shares a transaction with the read that produced it.

    Args:
        session_factory: Async session factory bound to the PostGIS database.
        runner: Background runner for fire-and-forget recency updates.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        runner: BackgroundTaskRunner | None = None,
        *,
        batch_chunk_size: int = DEFAULT_BATCH_CHUNK_SIZE,
        synthetic_bbox_meters: float = DEFAULT_SYNTHETIC_BBOX_METERS,
    ) -> None:
        super().__init__(runner, batch_chunk_size=batch_chunk_size, synthetic_bbox_meters=synthetic_bbox_meters)
        self._session_factory = session_factory

    async def _query_nearest(self, point: GeoPoint, tolerance_meters: float) -> CachedLocation | None:
        async with self._session_factory() as session:
            result = await session.execute(nearest_query(point, tolerance_meters))
            row = result.scalars().first()
            return to_cached_location(row) if row is not None else None

    async def _query_batch_chunk(
        self,
        points: Sequence[GeoPoint],
        tolerance_meters: float,
    ) -> dict[GeoPoint, CachedLocation]:
        by_coords = {(p.longitude, p.latitude): p for p in points}
        converted: dict[uuid.UUID, CachedLocation] = {}
        matches: dict[GeoPoint, CachedLocation] = {}

        async with self._session_factory() as session:
            result = await session.execute(batch_query(points, tolerance_meters))
            for row, input_lon, input_lat in result.all():
                point = by_coords.get((input_lon, input_lat))
                if point is None:
                    continue
                # One record can serve several input coordinates
                if row.id not in converted:
                    converted[row.id] = to_cached_location(row)
                matches[point] = converted[row.id]

        return matches

    async def _insert(self, entry: CachedLocation) -> None:
        async with self._session_factory() as session:
            session.add(to_row(entry))
            await session.commit()

    async def touch_many(self, location_ids: Sequence[uuid.UUID]) -> None:
        if not location_ids:
            return
        async with self._session_factory() as session:
            await session.execute(
                update(Location)
                .where(Location.id.in_(list(location_ids)))
                .values(last_accessed_at=datetime.now(UTC))
                .execution_options(synchronize_session=False)
            )
            await session.commit()

    async def get_location(self, location_id: uuid.UUID) -> CachedLocation | None:
        async with self._session_factory() as session:
            row = await session.get(Location, location_id)
            return to_cached_location(row) if row is not None else None

    async def find_by_ids(self, location_ids: Sequence[uuid.UUID]) -> list[CachedLocation]:
        if not location_ids:
            return []
        async with self._session_factory() as session:
            result = await session.execute(select(Location).where(Location.id.in_(list(location_ids))))
            return [to_cached_location(row) for row in result.scalars().all()]

    async def find_by_exact_coordinates(self, point: GeoPoint) -> CachedLocation | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Location)
                .where(func.ST_Equals(Location.request_coordinates, make_point(point.longitude, point.latitude)))
                .order_by(*_RECENCY_ORDER)
                .limit(1)
            )
            row = result.scalars().first()
            return to_cached_location(row) if row is not None else None

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
        sort_column = getattr(Location, attribute)
        stmt = (
            filtered_query(select(Location), provider_name, search_text)
            .order_by(sort_column.desc().nulls_last() if descending else sort_column.asc().nulls_last(), Location.id)
            .offset((max(page, 1) - 1) * page_size)
            .limit(page_size)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [to_cached_location(row) for row in result.scalars().all()]

    async def count_locations(self, *, provider_name: str | None = None, search_text: str | None = None) -> int:
        stmt = filtered_query(select(func.count(Location.id)), provider_name, search_text)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one()

    async def count_by_provider(self) -> dict[str, int]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Location.provider_name, func.count(Location.id)).group_by(Location.provider_name)
            )
            return {name: count for name, count in result.all()}

    async def count_recent(self, days: int) -> int:
        since = datetime.now(UTC) - timedelta(days=days)
        async with self._session_factory() as session:
            result = await session.execute(select(func.count(Location.id)).where(Location.created_at > since))
            return result.scalar_one()

    async def distinct_provider_names(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Location.provider_name).distinct().order_by(Location.provider_name)
            )
            return list(result.scalars().all())

    async def find_ids(self, *, provider_name: str | None = None) -> list[uuid.UUID]:
        stmt = filtered_query(select(Location.id), provider_name, None)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def cache_stats(self) -> list[ProviderCacheStats]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(
                    Location.provider_name,
                    func.count(Location.id).label("cached_count"),
                    func.min(Location.created_at).label("oldest_entry"),
                    func.max(Location.created_at).label("newest_entry"),
                    func.max(Location.last_accessed_at).label("last_accessed"),
                )
                .group_by(Location.provider_name)
                .order_by(Location.provider_name)
            )
            return [
                ProviderCacheStats(
                    provider_name=row.provider_name,
                    cached_count=row.cached_count,
                    oldest_entry=row.oldest_entry,
                    newest_entry=row.newest_entry,
                    last_accessed=row.last_accessed,
                )
                for row in result.all()
            ]

    async def delete_locations(self, location_ids: Sequence[uuid.UUID]) -> int:
        if not location_ids:
            return 0
        async with self._session_factory() as session:
            result = await session.execute(delete(Location).where(Location.id.in_(list(location_ids))))
            await session.commit()
            return result.rowcount or 0

"""Unit tests for the PostGIS cache store: compiled SQL and row conversion, no database required."""

import uuid
import warnings
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy import select
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SADeprecationWarning

from revgeo.lib.geocoder.base import BoundingBox, CachedLocation, GeoPoint, ReverseGeocodingResult
from revgeo.lib.geocoder.cache import build_cache_entry
from revgeo.lib.geocoder.postgis_store import (
    PostgisLocationStore,
    batch_query,
    filtered_query,
    nearest_query,
    to_cached_location,
    to_row,
)
from revgeo.models.reverse_geocoding_location import ReverseGeocodingLocation


def _sql(stmt: object) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))  # type: ignore[attr-defined]


def _entry(lon: float = 2.35, lat: float = 48.85, bbox: BoundingBox | None = None) -> CachedLocation:
    result = ReverseGeocodingResult(
        longitude=lon,
        latitude=lat,
        display_name="Paris",
        provider_name="nominatim",
        city="Paris",
        country="France",
        bounding_box=bbox,
    )
    return build_cache_entry(GeoPoint(lon, lat), result, now=datetime(2026, 1, 1, tzinfo=UTC))


def _session_factory(execute_result: MagicMock) -> tuple[MagicMock, MagicMock]:
    session = MagicMock()
    session.execute = AsyncMock(return_value=execute_result)
    session.commit = AsyncMock()
    session.get = AsyncMock(return_value=None)

    @asynccontextmanager
    async def _open():  # type: ignore[no-untyped-def]
        yield session

    factory = MagicMock(side_effect=_open)
    return factory, session


class RecordingRunner:
    def __init__(self) -> None:
        self.count = 0

    def submit_task(self, coro, *, name=None):  # type: ignore[no-untyped-def]
        coro.close()
        self.count += 1
        return str(self.count)

    def get_status(self, job_id: str) -> None:
        return None

    async def wait_all(self) -> None:
        return None


class TestNearestQuery:
    """Tests for the single-point lookup statement."""

    def test_match_predicates(self) -> None:
        sql = _sql(nearest_query(GeoPoint(2.35, 48.85), 50.0))
        assert sql.count("ST_DWithin(CAST(") == 2
        assert "ST_Contains(reverse_geocoding_locations.bounding_box" in sql
        assert "CAST(reverse_geocoding_locations.result_coordinates AS geography)" in sql
        assert "CAST(reverse_geocoding_locations.request_coordinates AS geography)" in sql
        assert "ST_SetSRID(ST_MakePoint(" in sql

    def test_recency_order_and_limit(self) -> None:
        sql = _sql(nearest_query(GeoPoint(2.35, 48.85), 50.0))
        assert (
            "ORDER BY reverse_geocoding_locations.last_accessed_at DESC, "
            "reverse_geocoding_locations.created_at DESC, reverse_geocoding_locations.id DESC"
        ) in sql
        assert "LIMIT" in sql

    def test_tolerance_is_bound(self) -> None:
        compiled = nearest_query(GeoPoint(2.35, 48.85), 75.0).compile(dialect=postgresql.dialect())
        assert 75.0 in compiled.params.values()


class TestBatchQuery:
    """Tests for the multi-point lookup statement."""

    def test_single_statement_with_values_and_distinct_on(self) -> None:
        points = [GeoPoint(float(i), float(i)) for i in range(3)]
        sql = _sql(batch_query(points, 50.0))
        assert "VALUES" in sql
        assert "input_coords" in sql
        assert "DISTINCT ON (input_coords.input_lon, input_coords.input_lat)" in sql
        assert (
            "ORDER BY input_coords.input_lon, input_coords.input_lat, "
            "reverse_geocoding_locations.last_accessed_at DESC"
        ) in sql
        assert sql.count("SELECT") == 1

    def test_same_predicate_as_single_lookup(self) -> None:
        sql = _sql(batch_query([GeoPoint(0.0, 0.0)], 50.0))
        assert sql.count("ST_DWithin(CAST(") == 2
        assert "ST_MakePoint(input_coords.input_lon, input_coords.input_lat)" in sql

    def test_compiles_without_deprecation_warnings(self) -> None:
        with warnings.catch_warnings():
            warnings.simplefilter("error", SADeprecationWarning)
            _sql(batch_query([GeoPoint(1.0, 2.0), GeoPoint(3.0, 4.0)], 50.0))


class TestModelIndexes:
    """Tests for the cache table indexes."""

    def test_admin_and_spatial_indexes(self) -> None:
        table = ReverseGeocodingLocation.__table__
        indexes = {index.name: [c.name for c in index.columns] for index in table.indexes}
        assert indexes["ix_rgl_created_at"] == ["created_at"]
        assert indexes["ix_rgl_last_accessed_at"] == ["last_accessed_at"]
        assert indexes["ix_rgl_provider_name"] == ["provider_name"]
        for name in ("ix_rgl_request_coordinates", "ix_rgl_result_coordinates", "ix_rgl_bounding_box"):
            assert name in indexes


class TestFilteredQuery:
    """Tests for admin filters."""

    def test_provider_and_search(self) -> None:
        sql = _sql(filtered_query(select(ReverseGeocodingLocation), "photon", "Berlin"))
        assert "reverse_geocoding_locations.provider_name =" in sql
        assert sql.count("lower(") == 3
        assert "LIKE" in sql

    def test_blank_filters_are_ignored(self) -> None:
        sql = _sql(filtered_query(select(ReverseGeocodingLocation), " ", ""))
        assert "WHERE" not in sql


class TestRowConversion:
    """Tests for ORM row <-> CachedLocation conversion."""

    def test_round_trip(self) -> None:
        entry = _entry(bbox=BoundingBox(2.2, 48.8, 2.5, 48.9))
        converted = to_cached_location(to_row(entry))
        assert converted.id == entry.id
        assert converted.request_coordinate == entry.request_coordinate
        assert converted.result_coordinate == entry.result_coordinate
        assert converted.bounding_box.bounds == (2.2, 48.8, 2.5, 48.9)
        assert converted.city == "Paris"
        assert converted.created_at == entry.created_at


class TestPostgisLocationStore:
    """Tests for store methods against a mocked session."""

    async def test_batch_chunk_maps_rows_to_inputs(self) -> None:
        entry = _entry(0.0, 0.0, bbox=BoundingBox(-1.0, -1.0, 1.0, 1.0))
        row = to_row(entry)
        a, b, missing = GeoPoint(0.1, 0.1), GeoPoint(0.2, 0.2), GeoPoint(9.0, 9.0)
        result = MagicMock()
        result.all.return_value = [(row, 0.1, 0.1), (row, 0.2, 0.2)]
        factory, session = _session_factory(result)
        runner = RecordingRunner()
        store = PostgisLocationStore(factory, runner)

        matches = await store.find_batch([a, b, missing, a], 50.0)

        assert set(matches) == {a, b}
        assert matches[a].id == entry.id
        assert matches[a] is matches[b]
        assert session.execute.await_count == 1
        assert runner.count == 1

    async def test_batch_is_chunked(self) -> None:
        result = MagicMock()
        result.all.return_value = []
        factory, session = _session_factory(result)
        store = PostgisLocationStore(factory, RecordingRunner(), batch_chunk_size=2)

        await store.find_batch([GeoPoint(float(i), 0.0) for i in range(5)], 50.0)

        assert session.execute.await_count == 3

    async def test_find_nearest_miss(self) -> None:
        result = MagicMock()
        result.scalars.return_value.first.return_value = None
        factory, _ = _session_factory(result)
        runner = RecordingRunner()
        store = PostgisLocationStore(factory, runner)

        assert await store.find_nearest(GeoPoint(0.0, 0.0), 50.0) is None
        assert runner.count == 0

    async def test_find_nearest_hit_schedules_touch(self) -> None:
        entry = _entry()
        result = MagicMock()
        result.scalars.return_value.first.return_value = to_row(entry)
        factory, _ = _session_factory(result)
        runner = RecordingRunner()
        store = PostgisLocationStore(factory, runner)

        found = await store.find_nearest(entry.request_coordinate, 50.0)

        assert found is not None
        assert found.id == entry.id
        assert runner.count == 1

    async def test_store_inserts_and_commits(self) -> None:
        factory, session = _session_factory(MagicMock())
        store = PostgisLocationStore(factory, RecordingRunner())
        result = ReverseGeocodingResult(longitude=1.0, latitude=2.0, display_name="X", provider_name="photon")

        entry = await store.store(GeoPoint(1.0, 2.0), result)

        added = session.add.call_args.args[0]
        assert isinstance(added, ReverseGeocodingLocation)
        assert added.id == entry.id
        assert added.provider_name == "photon"
        session.commit.assert_awaited_once()

    async def test_touch_many_updates_in_own_transaction(self) -> None:
        factory, session = _session_factory(MagicMock())
        store = PostgisLocationStore(factory, RecordingRunner())

        await store.touch_many([uuid.uuid4(), uuid.uuid4()])

        stmt = session.execute.call_args.args[0]
        assert "UPDATE reverse_geocoding_locations SET last_accessed_at" in _sql(stmt)
        session.commit.assert_awaited_once()

    async def test_touch_many_empty_is_noop(self) -> None:
        factory, session = _session_factory(MagicMock())
        store = PostgisLocationStore(factory, RecordingRunner())
        await store.touch_many([])
        session.execute.assert_not_awaited()

    async def test_delete_returns_rowcount(self) -> None:
        result = MagicMock()
        result.rowcount = 4
        factory, session = _session_factory(result)
        store = PostgisLocationStore(factory, RecordingRunner())

        assert await store.delete_locations([uuid.uuid4()]) == 4
        session.commit.assert_awaited_once()
        assert await store.delete_locations([]) == 0

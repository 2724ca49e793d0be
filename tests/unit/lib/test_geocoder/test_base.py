"""Unit tests for geocoder value types, error hierarchy, and provider interface."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from shapely.geometry import Point

from revgeo.lib.geocoder.base import (
    AllProvidersExhaustedError,
    BaseReverseGeocoder,
    BoundingBox,
    CachedLocation,
    ErrorKind,
    GeocodingProviderError,
    GeoPoint,
    PlaceResult,
    ProviderDisabledError,
    ResolutionStatus,
    ReverseGeocodingResult,
    UnknownProviderError,
)


class TestGeoPoint:
    """Tests for GeoPoint validation and identity."""

    def test_valid_point(self) -> None:
        point = GeoPoint(-84.388, 33.749)
        assert point.longitude == -84.388
        assert point.latitude == 33.749

    @pytest.mark.parametrize(("lon", "lat"), [(0.0, 90.1), (0.0, -90.1), (180.5, 0.0), (-181.0, 0.0)])
    def test_out_of_range_raises(self, lon: float, lat: float) -> None:
        with pytest.raises(ValueError, match="must be between"):
            GeoPoint(lon, lat)

    def test_boundary_values_accepted(self) -> None:
        GeoPoint(180.0, 90.0)
        GeoPoint(-180.0, -90.0)

    def test_equal_points_hash_equal(self) -> None:
        assert GeoPoint(1.5, 2.5) == GeoPoint(1.5, 2.5)
        assert len({GeoPoint(1.5, 2.5), GeoPoint(1.5, 2.5)}) == 1

    def test_nearby_points_are_distinct(self) -> None:
        assert GeoPoint(1.5, 2.5) != GeoPoint(1.5000001, 2.5)

    def test_str(self) -> None:
        assert str(GeoPoint(1.5, 2.5)) == "1.5,2.5"


class TestBoundingBox:
    """Tests for BoundingBox validation and polygon conversion."""

    def test_to_polygon_bounds(self) -> None:
        polygon = BoundingBox(1.0, 2.0, 3.0, 4.0).to_polygon()
        assert polygon.bounds == (1.0, 2.0, 3.0, 4.0)

    def test_inverted_box_raises(self) -> None:
        with pytest.raises(ValueError, match="must not exceed"):
            BoundingBox(3.0, 2.0, 1.0, 4.0)

    def test_out_of_range_raises(self) -> None:
        with pytest.raises(ValueError):
            BoundingBox(-200.0, 0.0, 0.0, 1.0)

    def test_polygon_contains_interior_point(self) -> None:
        polygon = BoundingBox(0.0, 0.0, 1.0, 1.0).to_polygon()
        assert polygon.contains(Point(0.5, 0.5))
        assert not polygon.contains(Point(1.5, 0.5))


class TestReverseGeocodingResult:
    """Tests for the provider result dataclass."""

    def test_point_property(self) -> None:
        result = ReverseGeocodingResult(longitude=10.0, latitude=20.0, display_name="X", provider_name="nominatim")
        assert result.point == GeoPoint(10.0, 20.0)

    def test_invalid_coordinates_raise(self) -> None:
        with pytest.raises(ValueError):
            ReverseGeocodingResult(longitude=10.0, latitude=95.0, display_name="X", provider_name="nominatim")


class TestCachedLocation:
    """Tests for CachedLocation invariants."""

    def _location(self, created_at: datetime, last_accessed_at: datetime) -> CachedLocation:
        return CachedLocation(
            request_coordinate=GeoPoint(0.0, 0.0),
            result_coordinate=GeoPoint(0.0, 0.0),
            bounding_box=BoundingBox(-0.1, -0.1, 0.1, 0.1).to_polygon(),
            display_name="Null Island",
            provider_name="nominatim",
            created_at=created_at,
            last_accessed_at=last_accessed_at,
        )

    def test_generates_id(self) -> None:
        now = datetime.now(UTC)
        location = self._location(now, now)
        assert isinstance(location.id, uuid.UUID)

    def test_last_accessed_before_created_raises(self) -> None:
        now = datetime.now(UTC)
        with pytest.raises(ValueError, match="must not precede"):
            self._location(now, now - timedelta(seconds=1))


class TestErrorHierarchy:
    """Tests for typed geocoding errors."""

    def test_kinds(self) -> None:
        assert ProviderDisabledError("mapbox").kind == ErrorKind.PROVIDER_DISABLED
        assert UnknownProviderError("x", ["nominatim"]).kind == ErrorKind.UNKNOWN_PROVIDER
        assert GeocodingProviderError("photon", "boom").kind == ErrorKind.PROVIDER_CALL_FAILED

    def test_provider_error_fields(self) -> None:
        err = GeocodingProviderError("photon", "HTTP 503", status_code=503)
        assert err.provider_name == "photon"
        assert err.status_code == 503
        assert str(err) == "photon: HTTP 503"

    def test_exhausted_message_names_both_failures(self) -> None:
        primary = GeocodingProviderError("nominatim", "timed out")
        fallback = GeocodingProviderError("photon", "HTTP 500")
        err = AllProvidersExhaustedError("nominatim", primary, "photon", fallback)
        assert err.kind == ErrorKind.ALL_PROVIDERS_EXHAUSTED
        assert "timed out" in str(err)
        assert "HTTP 500" in str(err)
        assert err.primary_error is primary
        assert err.fallback_error is fallback

    def test_exhausted_without_fallback(self) -> None:
        primary = ProviderDisabledError("nominatim")
        err = AllProvidersExhaustedError("nominatim", primary)
        assert err.fallback_provider is None
        assert err.fallback_error is None
        assert "fallback" not in str(err)


class TestPlaceResult:
    """Tests for PlaceResult derived properties."""

    def test_failed_result_exposes_error_kind(self) -> None:
        result = PlaceResult(
            point=GeoPoint(0.0, 0.0),
            status=ResolutionStatus.FAILED,
            error=ProviderDisabledError("mapbox"),
        )
        assert not result.ok
        assert result.error_kind == ErrorKind.PROVIDER_DISABLED
        assert result.display_name is None

    def test_resolved_result_display_name_from_place(self) -> None:
        place = ReverseGeocodingResult(longitude=0.0, latitude=0.0, display_name="Here", provider_name="photon")
        result = PlaceResult(point=GeoPoint(0.0, 0.0), status=ResolutionStatus.RESOLVED, place=place)
        assert result.ok
        assert result.error_kind is None
        assert result.display_name == "Here"


class _StubGeocoder(BaseReverseGeocoder):
    def __init__(self, enabled: bool = True, configured: bool = True) -> None:
        super().__init__(enabled=enabled)
        self._configured = configured

    @property
    def provider_name(self) -> str:
        return "stub"

    @property
    def is_configured(self) -> bool:
        return self._configured

    async def reverse_geocode(self, point: GeoPoint) -> ReverseGeocodingResult | None:
        return None


class TestBaseReverseGeocoder:
    """Tests for provider enablement."""

    def test_enabled_and_configured(self) -> None:
        assert _StubGeocoder().is_enabled is True

    def test_disabled(self) -> None:
        assert _StubGeocoder(enabled=False).is_enabled is False

    def test_not_configured(self) -> None:
        assert _StubGeocoder(configured=False).is_enabled is False

    def test_display_name_defaults_to_provider_name(self) -> None:
        assert _StubGeocoder().display_name == "stub"

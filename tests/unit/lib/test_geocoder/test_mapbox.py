"""Unit tests for Mapbox reverse geocoder provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from revgeo.lib.geocoder.base import GeocodingProviderError, GeoPoint
from revgeo.lib.geocoder.mapbox import MAPBOX_REVERSE_API_URL, MapboxGeocoder

POINT = GeoPoint(-122.4194, 37.7749)


def _feature(**properties: object) -> dict:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [-122.4194, 37.7749]},
        "properties": properties,
    }


class TestMapboxResponseParsing:
    """Tests for Mapbox v6 response parsing."""

    def setup_method(self) -> None:
        self.geocoder = MapboxGeocoder(api_key="pk.test")

    def test_successful_match(self) -> None:
        data = {
            "features": [
                _feature(
                    full_address="1 Market St, San Francisco, California 94105, United States",
                    context={"place": {"name": "San Francisco"}, "country": {"name": "United States"}},
                    bbox=[-122.52, 37.70, -122.35, 37.83],
                )
            ]
        }
        result = self.geocoder._parse_response(data)
        assert result is not None
        assert result.display_name.startswith("1 Market St")
        assert result.city == "San Francisco"
        assert result.country == "United States"
        assert result.bounding_box is not None
        assert result.bounding_box.max_latitude == 37.83

    def test_display_name_falls_back_to_name(self) -> None:
        result = self.geocoder._parse_response({"features": [_feature(name="Golden Gate Park")]})
        assert result is not None
        assert result.display_name == "Golden Gate Park"
        assert result.city is None

    def test_no_features_returns_none(self) -> None:
        assert self.geocoder._parse_response({"features": []}) is None

    def test_bad_coordinates_raise(self) -> None:
        data = {"features": [{"geometry": {"coordinates": ["x", "y"]}, "properties": {}}]}
        with pytest.raises(GeocodingProviderError, match="mapbox"):
            self.geocoder._parse_response(data)


class TestMapboxGeocoderErrors:
    """Tests for MapboxGeocoder transport errors."""

    async def test_unauthorized_raises_with_status(self) -> None:
        geocoder = MapboxGeocoder(api_key="pk.bad")
        mock_response = httpx.Response(status_code=401, request=httpx.Request("GET", "http://test"))
        with (
            patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get,
            pytest.raises(GeocodingProviderError) as exc_info,
        ):
            mock_get.side_effect = httpx.HTTPStatusError(
                "Unauthorized", request=mock_response.request, response=mock_response
            )
            await geocoder.reverse_geocode(POINT)
        assert exc_info.value.status_code == 401

    async def test_request_params(self) -> None:
        geocoder = MapboxGeocoder(api_key="pk.test")
        response = MagicMock()
        response.json.return_value = {"features": []}
        response.raise_for_status = MagicMock()

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=response) as mock_get:
            assert await geocoder.reverse_geocode(POINT) is None

        assert mock_get.call_args.args[0] == MAPBOX_REVERSE_API_URL
        params = mock_get.call_args.kwargs["params"]
        assert params["longitude"] == -122.4194
        assert params["latitude"] == 37.7749
        assert params["access_token"] == "pk.test"


class TestMapboxProperties:
    """Tests for MapboxGeocoder base properties."""

    def test_provider_name(self) -> None:
        assert MapboxGeocoder().provider_name == "mapbox"

    def test_not_enabled_without_token(self) -> None:
        assert MapboxGeocoder().is_enabled is False

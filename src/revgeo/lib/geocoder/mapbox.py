"""Mapbox Geocoding API v6 reverse provider.

Uses the Mapbox Geocoding API v6 reverse endpoint
(https://docs.mapbox.com/api/search/geocoding/#reverse-geocoding)
for coordinate-to-place resolution. Requires an access token.
"""

import httpx
from loguru import logger

from revgeo.lib.geocoder.base import (
    BaseReverseGeocoder,
    BoundingBox,
    GeocodingProviderError,
    GeoPoint,
    ReverseGeocodingResult,
)

MAPBOX_REVERSE_API_URL = "https://api.mapbox.com/search/geocode/v6/reverse"
DEFAULT_TIMEOUT = 10.0


class MapboxGeocoder(BaseReverseGeocoder):
    """Mapbox reverse geocoder provider."""

    def __init__(
        self,
        api_key: str = "",
        enabled: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        language: str = "en",
    ) -> None:
        super().__init__(enabled=enabled)
        self._api_key = api_key
        self._timeout = timeout
        self._language = language

    @property
    def provider_name(self) -> str:
        return "mapbox"

    @property
    def display_name(self) -> str:
        return "Mapbox"

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def reverse_geocode(self, point: GeoPoint) -> ReverseGeocodingResult | None:
        """Reverse geocode a coordinate using the Mapbox API.

        Args:
            point: WGS84 coordinate to resolve.

        Returns:
            ReverseGeocodingResult or None if no feature was found.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
        params: dict[str, str | float | int] = {
            "longitude": point.longitude,
            "latitude": point.latitude,
            "access_token": self._api_key,
            "language": self._language,
            "limit": 1,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(MAPBOX_REVERSE_API_URL, params=params)
                response.raise_for_status()

            data = response.json()
            return self._parse_response(data)

        except httpx.TimeoutException as e:
            logger.warning("Mapbox reverse geocoder timeout")
            raise GeocodingProviderError("mapbox", "Reverse geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Mapbox reverse geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "mapbox",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Mapbox reverse geocoder connection error")
            raise GeocodingProviderError("mapbox", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("Mapbox reverse geocoder unexpected error")
            raise GeocodingProviderError("mapbox", f"Unexpected error: {e}") from e

    def _parse_response(self, data: dict) -> ReverseGeocodingResult | None:
        """Parse a Mapbox v6 reverse response into a ReverseGeocodingResult."""
        features = data.get("features", [])
        if not features:
            return None

        best = features[0]
        try:
            coords = best["geometry"]["coordinates"]
            lng = float(coords[0])
            lat = float(coords[1])
        except (KeyError, IndexError, ValueError, TypeError) as e:
            logger.warning(f"Failed to parse Mapbox response: {e}")
            raise GeocodingProviderError("mapbox", f"Failed to parse response: {e}") from e

        properties = best.get("properties", {})
        context = properties.get("context", {})

        return ReverseGeocodingResult(
            longitude=lng,
            latitude=lat,
            display_name=properties.get("full_address")
            or properties.get("place_formatted")
            or properties.get("name")
            or f"{lat}, {lng}",
            provider_name="mapbox",
            city=(context.get("place") or {}).get("name"),
            country=(context.get("country") or {}).get("name"),
            bounding_box=self._parse_bbox(properties.get("bbox") or best.get("bbox")),
            raw_response=data,
        )

    @staticmethod
    def _parse_bbox(raw: list | None) -> BoundingBox | None:
        """Map Mapbox's ``[min_lon, min_lat, max_lon, max_lat]`` to a BoundingBox."""
        if not raw or len(raw) != 4:
            return None
        try:
            return BoundingBox(*(float(v) for v in raw))
        except (ValueError, TypeError):
            logger.debug(f"Ignoring malformed Mapbox bbox: {raw}")
            return None

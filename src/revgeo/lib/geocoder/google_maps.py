"""Google Maps reverse geocoding provider.

Uses the Google Maps Geocoding API in reverse mode
(https://developers.google.com/maps/documentation/geocoding/requests-reverse-geocoding)
for coordinate-to-place resolution. Requires an API key.
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

GOOGLE_API_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DEFAULT_TIMEOUT = 10.0


class GoogleMapsGeocoder(BaseReverseGeocoder):
    """Google Maps reverse geocoder provider."""

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
        return "googlemaps"

    @property
    def display_name(self) -> str:
        return "GoogleMaps"

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def reverse_geocode(self, point: GeoPoint) -> ReverseGeocodingResult | None:
        """Reverse geocode a coordinate using the Google Maps API.

        Args:
            point: WGS84 coordinate to resolve.

        Returns:
            ReverseGeocodingResult or None if Google reports ZERO_RESULTS.

        Raises:
            GeocodingProviderError: On transport, service, or API-specific errors.
        """
        params = {
            "latlng": f"{point.latitude},{point.longitude}",
            "key": self._api_key,
            "language": self._language,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(GOOGLE_API_URL, params=params)
                response.raise_for_status()

            data = response.json()
            return self._parse_response(data)

        except httpx.TimeoutException as e:
            logger.warning("Google Maps reverse geocoder timeout")
            raise GeocodingProviderError("googlemaps", "Reverse geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Google Maps reverse geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "googlemaps",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Google Maps reverse geocoder connection error")
            raise GeocodingProviderError("googlemaps", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("Google Maps reverse geocoder unexpected error")
            raise GeocodingProviderError("googlemaps", f"Unexpected error: {e}") from e

    def _parse_response(self, data: dict) -> ReverseGeocodingResult | None:
        """Parse a Google Maps API response into a ReverseGeocodingResult.

        Args:
            data: Raw JSON response from Google Maps API.

        Returns:
            ReverseGeocodingResult or None if no place was found.

        Raises:
            GeocodingProviderError: On API-specific error statuses.
        """
        api_status = data.get("status", "UNKNOWN")

        if api_status == "ZERO_RESULTS":
            return None

        if api_status in ("REQUEST_DENIED", "OVER_QUERY_LIMIT", "OVER_DAILY_LIMIT", "INVALID_REQUEST"):
            msg = data.get("error_message", api_status)
            raise GeocodingProviderError("googlemaps", f"API error: {msg}")

        if api_status != "OK":
            raise GeocodingProviderError("googlemaps", f"Unexpected API status: {api_status}")

        results = data.get("results", [])
        if not results:
            return None

        best = results[0]
        try:
            location = best["geometry"]["location"]
            lat = float(location["lat"])
            lng = float(location["lng"])
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to parse Google Maps response: {e}")
            raise GeocodingProviderError("googlemaps", f"Failed to parse response: {e}") from e

        components = best.get("address_components", [])

        return ReverseGeocodingResult(
            longitude=lng,
            latitude=lat,
            display_name=best.get("formatted_address") or f"{lat}, {lng}",
            provider_name="googlemaps",
            city=self._component(components, "locality") or self._component(components, "postal_town"),
            country=self._component(components, "country"),
            bounding_box=self._parse_viewport(best.get("geometry", {})),
            raw_response=data,
        )

    @staticmethod
    def _component(components: list[dict], component_type: str) -> str | None:
        """Return the long name of the first address component with the given type."""
        for component in components:
            if component_type in component.get("types", []):
                return component.get("long_name")
        return None

    @staticmethod
    def _parse_viewport(geometry: dict) -> BoundingBox | None:
        """Use the result's ``bounds`` (or ``viewport``) as its bounding box."""
        frame = geometry.get("bounds") or geometry.get("viewport")
        if not frame:
            return None
        try:
            southwest = frame["southwest"]
            northeast = frame["northeast"]
            return BoundingBox(
                float(southwest["lng"]),
                float(southwest["lat"]),
                float(northeast["lng"]),
                float(northeast["lat"]),
            )
        except (KeyError, ValueError, TypeError):
            # Viewports that cross the antimeridian have southwest.lng > northeast.lng
            logger.debug(f"Ignoring unusable Google Maps viewport: {frame}")
            return None

"""OpenStreetMap Nominatim reverse geocoder provider.

Uses the Nominatim reverse API (https://nominatim.org/release-docs/develop/api/Reverse/)
for coordinate-to-place resolution. Free but rate-limited to 1 req/sec on the
public instance.
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

DEFAULT_BASE_URL = "https://nominatim.openstreetmap.org"
DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "revgeo/1.0"

# Address keys checked in order for the locality name
_CITY_KEYS = ("city", "town", "village", "municipality", "hamlet", "suburb")


class NominatimGeocoder(BaseReverseGeocoder):
    """OpenStreetMap Nominatim reverse geocoder provider."""

    def __init__(
        self,
        enabled: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = DEFAULT_BASE_URL,
        email: str = "",
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        super().__init__(enabled=enabled)
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")
        self._email = email
        self._user_agent = user_agent

    @property
    def provider_name(self) -> str:
        return "nominatim"

    @property
    def display_name(self) -> str:
        return "Nominatim"

    async def reverse_geocode(self, point: GeoPoint) -> ReverseGeocodingResult | None:
        """Reverse geocode a coordinate using the Nominatim API.

        Args:
            point: WGS84 coordinate to resolve.

        Returns:
            ReverseGeocodingResult or None if Nominatim has no place there.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
        params: dict[str, str | float | int] = {
            "lat": point.latitude,
            "lon": point.longitude,
            "format": "jsonv2",
            "addressdetails": 1,
        }
        if self._email:
            params["email"] = self._email

        headers = {"User-Agent": self._user_agent}

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(f"{self._base_url}/reverse", params=params, headers=headers)
                response.raise_for_status()

            data = response.json()
            return self._parse_response(data)

        except httpx.TimeoutException as e:
            logger.warning("Nominatim reverse geocoder timeout")
            raise GeocodingProviderError("nominatim", "Reverse geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Nominatim reverse geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "nominatim",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Nominatim reverse geocoder connection error")
            raise GeocodingProviderError("nominatim", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("Nominatim reverse geocoder unexpected error")
            raise GeocodingProviderError("nominatim", f"Unexpected error: {e}") from e

    def _parse_response(self, data: dict) -> ReverseGeocodingResult | None:
        """Parse a Nominatim reverse response into a ReverseGeocodingResult.

        Args:
            data: Raw JSON object from the Nominatim reverse endpoint.

        Returns:
            ReverseGeocodingResult or None if Nominatim reported no place.
        """
        if not data or "error" in data:
            return None

        try:
            lat = float(data["lat"])
            lon = float(data["lon"])
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to parse Nominatim response: {e}")
            raise GeocodingProviderError("nominatim", f"Failed to parse response: {e}") from e

        address = data.get("address") or {}
        city = next((address[key] for key in _CITY_KEYS if address.get(key)), None)

        return ReverseGeocodingResult(
            longitude=lon,
            latitude=lat,
            display_name=data.get("display_name") or data.get("name") or f"{lat}, {lon}",
            provider_name="nominatim",
            city=city,
            country=address.get("country"),
            bounding_box=self._parse_bounding_box(data.get("boundingbox")),
            raw_response=data,
        )

    @staticmethod
    def _parse_bounding_box(raw: list | None) -> BoundingBox | None:
        """Map Nominatim's ``[min_lat, max_lat, min_lon, max_lon]`` strings to a BoundingBox."""
        if not raw or len(raw) != 4:
            return None
        try:
            min_lat, max_lat, min_lon, max_lon = (float(v) for v in raw)
            return BoundingBox(min_lon, min_lat, max_lon, max_lat)
        except (ValueError, TypeError):
            logger.debug(f"Ignoring malformed Nominatim bounding box: {raw}")
            return None

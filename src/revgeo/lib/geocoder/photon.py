"""Photon (Komoot) reverse geocoder provider.

Uses the Photon reverse endpoint (https://photon.komoot.io/) for
coordinate-to-place resolution. Free, open-source, and self-hostable.
Based on OpenStreetMap data.
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

DEFAULT_BASE_URL = "https://photon.komoot.io"
DEFAULT_TIMEOUT = 10.0


class PhotonGeocoder(BaseReverseGeocoder):
    """Photon (Komoot) reverse geocoder provider."""

    def __init__(
        self,
        enabled: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        super().__init__(enabled=enabled)
        self._timeout = timeout
        self._base_url = base_url.rstrip("/")

    @property
    def provider_name(self) -> str:
        return "photon"

    @property
    def display_name(self) -> str:
        return "Photon"

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url)

    async def reverse_geocode(self, point: GeoPoint) -> ReverseGeocodingResult | None:
        """Reverse geocode a coordinate using the Photon API.

        Args:
            point: WGS84 coordinate to resolve.

        Returns:
            ReverseGeocodingResult or None if no feature was found.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
        url = f"{self._base_url}/reverse"
        params: dict[str, str | float | int] = {
            "lon": point.longitude,
            "lat": point.latitude,
            "limit": 1,
            "lang": "en",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()

            data = response.json()
            return self._parse_response(data)

        except httpx.TimeoutException as e:
            logger.warning("Photon reverse geocoder timeout")
            raise GeocodingProviderError("photon", "Reverse geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Photon reverse geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "photon",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Photon reverse geocoder connection error")
            raise GeocodingProviderError("photon", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("Photon reverse geocoder unexpected error")
            raise GeocodingProviderError("photon", f"Unexpected error: {e}") from e

    def _parse_response(self, data: dict) -> ReverseGeocodingResult | None:
        """Parse a Photon GeoJSON response into a ReverseGeocodingResult.

        Args:
            data: Raw GeoJSON FeatureCollection from Photon.

        Returns:
            ReverseGeocodingResult or None if no feature was found.
        """
        features = data.get("features", [])
        if not features:
            return None

        best = features[0]
        try:
            coords = best["geometry"]["coordinates"]
            lng = float(coords[0])
            lat = float(coords[1])
        except (KeyError, IndexError, ValueError, TypeError) as e:
            logger.warning(f"Failed to parse Photon response: {e}")
            raise GeocodingProviderError("photon", f"Failed to parse response: {e}") from e

        properties = best.get("properties", {})

        return ReverseGeocodingResult(
            longitude=lng,
            latitude=lat,
            display_name=self._build_display_name(properties) or f"{lat}, {lng}",
            provider_name="photon",
            city=properties.get("city") or properties.get("town") or properties.get("village"),
            country=properties.get("country"),
            bounding_box=self._parse_extent(properties.get("extent")),
            raw_response=data,
        )

    @staticmethod
    def _parse_extent(extent: list | None) -> BoundingBox | None:
        """Map Photon's ``[west, north, east, south]`` extent to a BoundingBox."""
        if not extent or len(extent) != 4:
            return None
        try:
            lon_a, lat_a, lon_b, lat_b = (float(v) for v in extent)
            return BoundingBox(min(lon_a, lon_b), min(lat_a, lat_b), max(lon_a, lon_b), max(lat_a, lat_b))
        except (ValueError, TypeError):
            logger.debug(f"Ignoring malformed Photon extent: {extent}")
            return None

    @staticmethod
    def _build_display_name(properties: dict) -> str | None:
        """Build a human-readable place name from Photon properties."""
        parts = []
        if properties.get("name"):
            parts.append(properties["name"])
        if properties.get("street"):
            street = properties["street"]
            if properties.get("housenumber"):
                street = f"{properties['housenumber']} {street}"
            parts.append(street)
        if properties.get("city"):
            parts.append(properties["city"])
        if properties.get("state"):
            parts.append(properties["state"])
        if properties.get("postcode"):
            parts.append(properties["postcode"])
        if properties.get("country"):
            parts.append(properties["country"])

        return ", ".join(parts) if parts else None

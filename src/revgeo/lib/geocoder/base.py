"""Abstract reverse geocoder interface, value types, and error hierarchy."""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from shapely.geometry import Polygon, box


def _validate_coordinates(longitude: float, latitude: float) -> None:
    if not (-90 <= latitude <= 90):
        msg = f"latitude must be between -90 and 90, got {latitude}"
        raise ValueError(msg)
    if not (-180 <= longitude <= 180):
        msg = f"longitude must be between -180 and 180, got {longitude}"
        raise ValueError(msg)


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 coordinate. Equality and hashing are exact on both floats."""

    longitude: float
    latitude: float

    def __post_init__(self) -> None:
        _validate_coordinates(self.longitude, self.latitude)

    def __str__(self) -> str:
        return f"{self.longitude},{self.latitude}"


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned extent over which a resolved place is considered valid."""

    min_longitude: float
    min_latitude: float
    max_longitude: float
    max_latitude: float

    def __post_init__(self) -> None:
        _validate_coordinates(self.min_longitude, self.min_latitude)
        _validate_coordinates(self.max_longitude, self.max_latitude)
        if self.min_longitude > self.max_longitude or self.min_latitude > self.max_latitude:
            msg = f"bounding box minimums must not exceed maximums, got {self}"
            raise ValueError(msg)

    def to_polygon(self) -> Polygon:
        """Return the box as a shapely polygon (longitude = x, latitude = y)."""
        return box(self.min_longitude, self.min_latitude, self.max_longitude, self.max_latitude)


class ResolutionStatus(StrEnum):
    """Outcome of resolving a single coordinate."""

    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class ErrorKind(StrEnum):
    """Machine-readable failure reason attached to a failed resolution."""

    PROVIDER_DISABLED = "provider_disabled"
    UNKNOWN_PROVIDER = "unknown_provider"
    PROVIDER_CALL_FAILED = "provider_call_failed"
    ALL_PROVIDERS_EXHAUSTED = "all_providers_exhausted"


@dataclass
class ReverseGeocodingResult:
    """Structured place returned by a provider for a coordinate."""

    longitude: float
    latitude: float
    display_name: str
    provider_name: str
    city: str | None = None
    country: str | None = None
    bounding_box: BoundingBox | None = None
    raw_response: dict | None = None

    def __post_init__(self) -> None:
        _validate_coordinates(self.longitude, self.latitude)

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.longitude, self.latitude)


@dataclass
class CachedLocation:
    """A durable cache record.

    Only ``last_accessed_at`` changes after creation; the place data is
    immutable once stored.
    """

    request_coordinate: GeoPoint
    result_coordinate: GeoPoint
    bounding_box: Polygon
    display_name: str
    provider_name: str
    created_at: datetime
    last_accessed_at: datetime
    city: str | None = None
    country: str | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def __post_init__(self) -> None:
        if self.last_accessed_at < self.created_at:
            msg = "last_accessed_at must not precede created_at"
            raise ValueError(msg)


class GeocodingError(Exception):
    """Base class for every failure the engine reports."""

    kind: ErrorKind


class ProviderDisabledError(GeocodingError):
    """Raised when a known provider is not currently usable (disabled or missing credentials)."""

    kind = ErrorKind.PROVIDER_DISABLED

    def __init__(self, provider_name: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"{provider_name} provider is disabled or not configured")


class UnknownProviderError(GeocodingError):
    """Raised when a provider name is not in the registry."""

    kind = ErrorKind.UNKNOWN_PROVIDER

    def __init__(self, provider_name: str, available: list[str]) -> None:
        self.provider_name = provider_name
        self.available = available
        super().__init__(f"Unknown geocoder provider: {provider_name!r}. Available: {available}")


class GeocodingProviderError(GeocodingError):
    """Raised when a geocoding provider experiences a transport or service error.

    Distinguishes provider failures (timeout, HTTP error, quota, parse error)
    from a successful response with no place (which returns None).

    Args:
        provider_name: Name of the failing provider.
        message: Human-readable error description.
        status_code: Optional HTTP status code from the provider.
    """

    kind = ErrorKind.PROVIDER_CALL_FAILED

    def __init__(self, provider_name: str, message: str, status_code: int | None = None) -> None:
        self.provider_name = provider_name
        self.message = message
        self.status_code = status_code
        super().__init__(f"{provider_name}: {message}")


class AllProvidersExhaustedError(GeocodingError):
    """Raised when the primary provider, and the fallback if one was attempted, both failed.

    Args:
        primary_provider: Configured primary provider name.
        primary_error: Failure of the primary provider.
        fallback_provider: Fallback provider name, if one was attempted.
        fallback_error: Failure of the fallback provider, if one was attempted.
    """

    kind = ErrorKind.ALL_PROVIDERS_EXHAUSTED

    def __init__(
        self,
        primary_provider: str,
        primary_error: GeocodingError,
        fallback_provider: str | None = None,
        fallback_error: GeocodingError | None = None,
    ) -> None:
        self.primary_provider = primary_provider
        self.primary_error = primary_error
        self.fallback_provider = fallback_provider
        self.fallback_error = fallback_error
        message = f"All providers failed; primary {primary_provider!r}: {primary_error}"
        if fallback_provider is not None:
            message += f"; fallback {fallback_provider!r}: {fallback_error}"
        super().__init__(message)


@dataclass
class PlaceResult:
    """Per-point resolution outcome: a place, a legitimate "nothing here", or a typed failure."""

    point: GeoPoint
    status: ResolutionStatus
    place: ReverseGeocodingResult | None = None
    location: CachedLocation | None = None
    cached: bool = False
    provider_name: str | None = None
    error: GeocodingError | None = None

    @property
    def ok(self) -> bool:
        return self.status == ResolutionStatus.RESOLVED

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    @property
    def display_name(self) -> str | None:
        if self.location is not None:
            return self.location.display_name
        if self.place is not None:
            return self.place.display_name
        return None


class BaseReverseGeocoder(ABC):
    """Abstract reverse geocoder interface. All providers must implement this."""

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique registry name identifying this provider."""

    @property
    def display_name(self) -> str:
        """Human-readable provider name for listings."""
        return self.provider_name

    @property
    def requires_api_key(self) -> bool:
        """Whether this provider requires an API key to function."""
        return False

    @property
    def is_configured(self) -> bool:
        """Whether this provider has all required configuration (e.g., API keys)."""
        return True

    @property
    def is_enabled(self) -> bool:
        """Whether this provider may be called right now."""
        return self._enabled and self.is_configured

    @abstractmethod
    async def reverse_geocode(self, point: GeoPoint) -> ReverseGeocodingResult | None:
        """Resolve a coordinate to a place.

        Args:
            point: WGS84 coordinate to resolve.

        Returns:
            ReverseGeocodingResult, or None if the provider has no place for the point.

        Raises:
            GeocodingProviderError: On transport, quota, or parse errors.
        """

"""Geocoder library — reverse geocoding with a spatial cache and provider failover.

Public API:
    - GeoPoint / BoundingBox: Coordinate and extent value types
    - BaseReverseGeocoder: Abstract provider interface
    - ReverseGeocodingResult: Provider result dataclass
    - CachedLocation: Durable cache record
    - PlaceResult / ResolutionStatus: Per-point resolution outcome
    - GeocodingError and subclasses: Typed failures with an ErrorKind
    - NominatimGeocoder: OpenStreetMap Nominatim provider
    - GoogleMapsGeocoder: Google Maps provider
    - MapboxGeocoder: Mapbox provider
    - PhotonGeocoder: Photon (Komoot) provider
    - BaseLocationStore: Spatial cache store interface
    - PostgisLocationStore / InMemoryLocationStore: Cache store backends
    - GeocodingProviderFactory: Primary/fallback provider orchestration
    - BatchResolver: Cache-first single and batch resolution
    - get_geocoder / build_providers: Provider factory/registry
    - geodesic_distance_meters / meters_to_degrees: Spatial helpers
"""

from revgeo.lib.geocoder.base import (
    AllProvidersExhaustedError,
    BaseReverseGeocoder,
    BoundingBox,
    CachedLocation,
    ErrorKind,
    GeocodingError,
    GeocodingProviderError,
    GeoPoint,
    PlaceResult,
    ProviderDisabledError,
    ResolutionStatus,
    ReverseGeocodingResult,
    UnknownProviderError,
)
from revgeo.lib.geocoder.batch import BatchResolver
from revgeo.lib.geocoder.cache import BaseLocationStore, ProviderCacheStats, build_cache_entry
from revgeo.lib.geocoder.failover import GeocodingProviderFactory
from revgeo.lib.geocoder.google_maps import GoogleMapsGeocoder
from revgeo.lib.geocoder.mapbox import MapboxGeocoder
from revgeo.lib.geocoder.memory_store import InMemoryLocationStore
from revgeo.lib.geocoder.nominatim import NominatimGeocoder
from revgeo.lib.geocoder.photon import PhotonGeocoder
from revgeo.lib.geocoder.postgis_store import PostgisLocationStore
from revgeo.lib.geocoder.registry import build_provider, build_providers, get_available_providers, get_geocoder
from revgeo.lib.geocoder.spatial import bounding_box_around, geodesic_distance_meters, meters_to_degrees

__all__ = [
    "AllProvidersExhaustedError",
    "BaseLocationStore",
    "BaseReverseGeocoder",
    "BatchResolver",
    "BoundingBox",
    "CachedLocation",
    "ErrorKind",
    "GeoPoint",
    "GeocodingError",
    "GeocodingProviderError",
    "GeocodingProviderFactory",
    "GoogleMapsGeocoder",
    "InMemoryLocationStore",
    "MapboxGeocoder",
    "NominatimGeocoder",
    "PhotonGeocoder",
    "PlaceResult",
    "PostgisLocationStore",
    "ProviderCacheStats",
    "ProviderDisabledError",
    "ResolutionStatus",
    "ReverseGeocodingResult",
    "UnknownProviderError",
    "bounding_box_around",
    "build_cache_entry",
    "build_provider",
    "build_providers",
    "geodesic_distance_meters",
    "get_available_providers",
    "get_geocoder",
    "meters_to_degrees",
]

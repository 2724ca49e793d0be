"""Reverse geocoder provider registry and settings-driven construction."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from revgeo.lib.geocoder.base import BaseReverseGeocoder, UnknownProviderError
from revgeo.lib.geocoder.google_maps import GoogleMapsGeocoder
from revgeo.lib.geocoder.mapbox import MapboxGeocoder
from revgeo.lib.geocoder.nominatim import NominatimGeocoder
from revgeo.lib.geocoder.photon import PhotonGeocoder

if TYPE_CHECKING:
    from revgeo.core.config import Settings

# Provider registry — the closed set of known providers
_PROVIDERS: dict[str, type[BaseReverseGeocoder]] = {
    "nominatim": NominatimGeocoder,
    "googlemaps": GoogleMapsGeocoder,
    "mapbox": MapboxGeocoder,
    "photon": PhotonGeocoder,
}


def get_available_providers() -> list[str]:
    """Return the names of all registered geocoder providers.

    Returns:
        Sorted list of provider name strings.
    """
    return sorted(_PROVIDERS.keys())


def normalize_provider_name(provider: str) -> str:
    """Return the registry key for a provider name (case-insensitive).

    Raises:
        UnknownProviderError: If the name is not registered.
    """
    key = (provider or "").strip().lower()
    if key not in _PROVIDERS:
        raise UnknownProviderError(provider, get_available_providers())
    return key


def get_geocoder(provider: str, **kwargs: Any) -> BaseReverseGeocoder:
    """Get a geocoder instance by provider name.

    Args:
        provider: Provider name (e.g., "nominatim"), case-insensitive.
        **kwargs: Additional arguments forwarded to the provider constructor
            (e.g., ``timeout=2.0``).

    Returns:
        An instance of the requested geocoder provider.

    Raises:
        UnknownProviderError: If the provider is not registered.
    """
    return _PROVIDERS[normalize_provider_name(provider)](**kwargs)


def _provider_kwargs(settings: Settings) -> dict[str, dict[str, Any]]:
    return {
        "nominatim": {
            "enabled": settings.geocoder_nominatim_enabled,
            "timeout": settings.geocoder_nominatim_timeout,
            "base_url": settings.geocoder_nominatim_base_url,
            "email": settings.geocoder_nominatim_email,
        },
        "googlemaps": {
            "enabled": settings.geocoder_googlemaps_enabled,
            "api_key": settings.geocoder_googlemaps_api_key or "",
            "timeout": settings.geocoder_googlemaps_timeout,
        },
        "mapbox": {
            "enabled": settings.geocoder_mapbox_enabled,
            "api_key": settings.geocoder_mapbox_api_key or "",
            "timeout": settings.geocoder_mapbox_timeout,
        },
        "photon": {
            "enabled": settings.geocoder_photon_enabled,
            "timeout": settings.geocoder_photon_timeout,
            "base_url": settings.geocoder_photon_base_url,
        },
    }


def build_provider(provider: str, settings: Settings) -> BaseReverseGeocoder:
    """Instantiate one provider with its enabled flag and options from settings.

    The instance is returned even when disabled; callers check ``is_enabled``.

    Raises:
        UnknownProviderError: If the provider is not registered.
    """
    key = normalize_provider_name(provider)
    return get_geocoder(key, **_provider_kwargs(settings)[key])


def build_providers(settings: Settings) -> dict[str, BaseReverseGeocoder]:
    """Instantiate every registered provider from settings, keyed by registry name."""
    return {name: build_provider(name, settings) for name in get_available_providers()}

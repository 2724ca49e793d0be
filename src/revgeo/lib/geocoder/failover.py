"""Provider orchestration: primary/fallback failover and single-provider reconciliation.

Configuration is read through ``settings_getter`` on every call, so changing
the primary or fallback provider, or a provider's enabled flag, takes effect
without rebuilding the factory.
"""

from collections.abc import Callable, Mapping

from loguru import logger

from revgeo.core.config import Settings, get_settings
from revgeo.lib.geocoder.base import (
    AllProvidersExhaustedError,
    BaseReverseGeocoder,
    GeocodingError,
    GeoPoint,
    PlaceResult,
    ProviderDisabledError,
    ResolutionStatus,
    ReverseGeocodingResult,
    UnknownProviderError,
)
from revgeo.lib.geocoder.registry import build_providers, get_available_providers, normalize_provider_name


class GeocodingProviderFactory:
    """Select and call reverse geocoding providers with failover.

    Args:
        settings_getter: Returns current settings; called once per operation.
        providers: Fixed provider instances keyed by registry name. When
            omitted, providers are built from the current settings on each call.
    """

    def __init__(
        self,
        settings_getter: Callable[[], Settings] = get_settings,
        providers: Mapping[str, BaseReverseGeocoder] | None = None,
    ) -> None:
        self._settings_getter = settings_getter
        self._providers = {name.lower(): p for name, p in providers.items()} if providers is not None else None

    def _current_providers(self, settings: Settings) -> Mapping[str, BaseReverseGeocoder]:
        if self._providers is not None:
            return self._providers
        return build_providers(settings)

    @staticmethod
    def _get_provider(name: str, providers: Mapping[str, BaseReverseGeocoder]) -> BaseReverseGeocoder:
        key = normalize_provider_name(name)
        provider = providers.get(key)
        if provider is None:
            raise UnknownProviderError(name, get_available_providers())
        return provider

    @staticmethod
    async def _call_provider(provider: BaseReverseGeocoder, point: GeoPoint) -> ReverseGeocodingResult | None:
        if not provider.is_enabled:
            raise ProviderDisabledError(provider.provider_name)
        logger.debug(f"Calling {provider.provider_name} for {point}")
        return await provider.reverse_geocode(point)

    async def _attempt(
        self,
        name: str,
        point: GeoPoint,
        providers: Mapping[str, BaseReverseGeocoder],
    ) -> ReverseGeocodingResult | None:
        return await self._call_provider(self._get_provider(name, providers), point)

    async def reverse_geocode(self, point: GeoPoint) -> ReverseGeocodingResult | None:
        """Resolve a coordinate through the primary provider, failing over once.

        A provider answering with no place returns None and does not trigger
        the fallback.

        Args:
            point: WGS84 coordinate to resolve.

        Returns:
            ReverseGeocodingResult, or None if the answering provider has no place.

        Raises:
            AllProvidersExhaustedError: If the primary failed and the fallback
                failed or is not configured.
        """
        settings = self._settings_getter()
        providers = self._current_providers(settings)
        primary = settings.geocoder_primary_provider
        fallback = settings.geocoder_effective_fallback

        try:
            return await self._attempt(primary, point, providers)
        except GeocodingError as primary_error:
            if fallback is None:
                logger.warning(f"Primary provider {primary} failed and no fallback is configured: {primary_error}")
                raise AllProvidersExhaustedError(primary, primary_error) from primary_error

            logger.warning(f"Primary provider {primary} failed, falling back to {fallback}: {primary_error}")
            try:
                return await self._attempt(fallback, point, providers)
            except GeocodingError as fallback_error:
                logger.warning(f"Fallback provider {fallback} also failed: {fallback_error}")
                raise AllProvidersExhaustedError(primary, primary_error, fallback, fallback_error) from primary_error

    async def resolve_one(self, point: GeoPoint) -> PlaceResult:
        """Resolve a coordinate, reporting provider failures as a failed PlaceResult."""
        try:
            result = await self.reverse_geocode(point)
        except GeocodingError as e:
            return PlaceResult(point=point, status=ResolutionStatus.FAILED, error=e)

        if result is None:
            return PlaceResult(point=point, status=ResolutionStatus.NOT_FOUND)
        return PlaceResult(
            point=point,
            status=ResolutionStatus.RESOLVED,
            place=result,
            provider_name=result.provider_name,
        )

    async def reconcile_with_provider(self, provider_name: str, point: GeoPoint) -> ReverseGeocodingResult | None:
        """Resolve a coordinate with exactly one named provider, without fallback.

        Raises:
            UnknownProviderError: If the name is not registered.
            ProviderDisabledError: If the provider is not currently enabled.
            GeocodingProviderError: If the provider call fails.
        """
        settings = self._settings_getter()
        provider = self._get_provider(provider_name, self._current_providers(settings))
        return await self._call_provider(provider, point)

    def list_enabled_providers(self) -> list[str]:
        """Return display names of the providers enabled right now, in registry order."""
        providers = self._current_providers(self._settings_getter())
        return [providers[name].display_name for name in sorted(providers) if providers[name].is_enabled]

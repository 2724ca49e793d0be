"""Cache-first resolution of one or many coordinates.

Batch resolution makes a single batch cache lookup, then resolves the
distinct misses through the provider orchestrator with bounded concurrency
and writes each fresh result back to the cache. Each point's outcome is
independent of the others.
"""

import asyncio
from collections.abc import Iterable

from loguru import logger

from revgeo.lib.geocoder.base import CachedLocation, GeoPoint, PlaceResult, ResolutionStatus
from revgeo.lib.geocoder.cache import BaseLocationStore
from revgeo.lib.geocoder.failover import GeocodingProviderFactory

DEFAULT_MISS_CONCURRENCY = 5


def _cached_result(point: GeoPoint, location: CachedLocation) -> PlaceResult:
    return PlaceResult(
        point=point,
        status=ResolutionStatus.RESOLVED,
        location=location,
        cached=True,
        provider_name=location.provider_name,
    )


class BatchResolver:
    """Resolve coordinates against the spatial cache, falling through to providers on a miss.

    Args:
        store: Spatial cache store.
        orchestrator: Provider orchestrator used for cache misses.
        tolerance_meters: Cache match distance in meters.
        concurrency: Maximum provider calls in flight during a batch.
    """

    def __init__(
        self,
        store: BaseLocationStore,
        orchestrator: GeocodingProviderFactory,
        tolerance_meters: float,
        concurrency: int = DEFAULT_MISS_CONCURRENCY,
    ) -> None:
        if concurrency <= 0:
            msg = f"concurrency must be positive, got {concurrency}"
            raise ValueError(msg)
        self._store = store
        self._orchestrator = orchestrator
        self._tolerance_meters = tolerance_meters
        self._concurrency = concurrency

    async def resolve(self, point: GeoPoint) -> PlaceResult:
        """Resolve one coordinate, cache first."""
        location = await self._store.find_nearest(point, self._tolerance_meters)
        if location is not None:
            return _cached_result(point, location)
        return await self._resolve_miss(point)

    async def resolve_many(self, points: Iterable[GeoPoint]) -> dict[GeoPoint, PlaceResult]:
        """Resolve many coordinates with one batch cache lookup.

        Args:
            points: Coordinates to resolve (duplicates allowed).

        Returns:
            One PlaceResult per distinct input point, in first-seen order.
        """
        distinct = list(dict.fromkeys(points))
        if not distinct:
            return {}

        hits = await self._store.find_batch(distinct, self._tolerance_meters)
        results: dict[GeoPoint, PlaceResult] = {
            point: _cached_result(point, location) for point, location in hits.items()
        }

        misses = [point for point in distinct if point not in hits]
        logger.info(f"Batch resolve: {len(distinct)} distinct points, {len(hits)} cache hits, {len(misses)} misses")

        if misses:
            semaphore = asyncio.Semaphore(self._concurrency)

            async def _bounded(point: GeoPoint) -> PlaceResult:
                async with semaphore:
                    return await self._resolve_miss(point)

            resolved = await asyncio.gather(*(_bounded(point) for point in misses))
            results.update(zip(misses, resolved, strict=True))

        return {point: results[point] for point in distinct}

    async def _resolve_miss(self, point: GeoPoint) -> PlaceResult:
        result = await self._orchestrator.resolve_one(point)
        if result.status != ResolutionStatus.RESOLVED or result.place is None:
            return result

        try:
            result.location = await self._store.store(point, result.place)
        except Exception:
            logger.exception(f"Failed to cache {result.provider_name} result; returning it uncached")
        return result

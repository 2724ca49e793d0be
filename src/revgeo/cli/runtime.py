"""Engine lifecycle shared by CLI commands."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from revgeo.core.background import task_runner
from revgeo.core.config import get_settings
from revgeo.core.database import dispose_engine, init_engine_from_settings
from revgeo.services.reverse_geocoding_service import ReverseGeocodingService, build_service


@asynccontextmanager
async def open_service() -> AsyncIterator[ReverseGeocodingService]:
    """Build the service from settings, initializing the database engine when needed.

    Pending recency updates are awaited before the engine is disposed.
    """
    settings = get_settings()
    uses_database = settings.geocoder_cache_backend == "postgis"
    if uses_database:
        init_engine_from_settings(settings)

    try:
        yield build_service(settings, runner=task_runner)
    finally:
        await task_runner.wait_all()
        if uses_database:
            await dispose_engine()

"""Shared test fixtures for settings, background runner, and the in-memory cache store."""

from collections.abc import AsyncGenerator

import pytest

from revgeo.core.background import InProcessTaskRunner
from revgeo.core.config import Settings
from revgeo.lib.geocoder.memory_store import InMemoryLocationStore


@pytest.fixture
def settings() -> Settings:
    """Test application settings using the in-memory cache backend."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        geocoder_cache_backend="memory",
        geocoder_primary_provider="nominatim",
        geocoder_fallback_provider=None,
    )


@pytest.fixture
async def runner() -> AsyncGenerator[InProcessTaskRunner]:
    """Background runner drained after each test so no task outlives its loop."""
    task_runner = InProcessTaskRunner()
    yield task_runner
    await task_runner.wait_all()


@pytest.fixture
def memory_store(runner: InProcessTaskRunner) -> InMemoryLocationStore:
    """Empty in-memory spatial cache store."""
    return InMemoryLocationStore(runner)

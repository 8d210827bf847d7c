"""
Main pytest configuration for doccache tests.

Provides a controllable clock and cache fixtures backed by the
in-memory entry repository.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

# Keep tests independent of any developer .env file
os.environ.setdefault("DOCCACHE_INDEX_NAME", "test_cache")
os.environ.setdefault("DOCCACHE_LOG_LEVEL", "DEBUG")

from doccache.infrastructure.repositories.memory_entry_repository import (
    InMemoryEntryRepository,
)
from doccache.services.cache.distributed_cache import CacheConfig, DistributedCache


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def utcnow(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> datetime:
        self.now = self.now + delta
        return self.now


@pytest.fixture
def clock():
    """Manual clock starting at a fixed instant."""
    return ManualClock()


@pytest.fixture
def repository():
    """Empty in-memory entry repository."""
    return InMemoryEntryRepository()


@pytest.fixture
def cache_config():
    """Default cache configuration."""
    return CacheConfig(index_name="test_cache")


@pytest_asyncio.fixture
async def cache(repository, cache_config, clock):
    """Cache over the in-memory repository and manual clock."""
    cache = DistributedCache(repository, cache_config, clock=clock)
    yield cache
    await cache.sweeper.aclose()

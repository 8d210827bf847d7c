"""
Cache Factory

Wires settings, the document store client and the cache service together.
"""

from typing import Optional

import structlog

from .core.clock import Clock
from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .domain.cache.exceptions import InvalidConfigurationError
from .domain.cache.repository_interfaces import EntryRepository
from .infrastructure.redis.connection_factory import create_redis_client
from .infrastructure.repositories.redis_entry_repository import RedisEntryRepository
from .services.cache.distributed_cache import CacheConfig, DistributedCache

logger = structlog.get_logger(__name__)


def create_distributed_cache(
    settings: Optional[Settings] = None,
    *,
    repository: Optional[EntryRepository] = None,
    clock: Optional[Clock] = None,
    configure_logs: bool = True,
) -> DistributedCache:
    """
    Build a DistributedCache from settings.

    Args:
        settings: Cache settings (defaults to environment settings)
        repository: Entry repository to use instead of the Redis store
        clock: Clock override
        configure_logs: Apply LOG_LEVEL and LOG_JSON to structlog and the
            root logger

    Returns:
        Configured cache

    Raises:
        InvalidConfigurationError: If the settings cannot produce a working cache
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    config = CacheConfig.from_settings(settings)
    config.validate()

    if repository is None:
        if not settings.STORE_URL:
            raise InvalidConfigurationError(
                "store_url cannot be empty or None.", setting="store_url"
            )
        repository = RedisEntryRepository(
            create_redis_client(settings),
            config.index_name,
            replicas=settings.STORE_REPLICAS,
            replica_timeout_ms=settings.STORE_REPLICA_TIMEOUT_MS,
        )

    cache = DistributedCache(repository, config, clock=clock)
    logger.info(
        "Distributed cache created",
        index_name=config.index_name,
        repository=type(repository).__name__,
        compress=config.compress,
        refresh=config.refresh.value,
    )
    return cache

"""
Redis Connection Factory

Builds pooled asyncio Redis clients for the document store.
"""

from urllib.parse import urlparse

import structlog
from redis.asyncio import ConnectionPool, Redis

from ...core.config import Settings
from .exceptions import StoreConfigurationException

logger = structlog.get_logger(__name__)

SUPPORTED_SCHEMES = {"redis", "rediss", "unix"}


def create_redis_client(settings: Settings) -> Redis:
    """
    Create a Redis client from settings.

    Args:
        settings: Cache settings carrying the store URL and pool limits

    Returns:
        Redis client backed by a connection pool

    Raises:
        StoreConfigurationException: If the URL cannot be used
    """
    parsed_url = urlparse(settings.STORE_URL)
    if parsed_url.scheme not in SUPPORTED_SCHEMES:
        raise StoreConfigurationException(
            f"Unsupported store URL scheme: {parsed_url.scheme or '<none>'}"
        )

    try:
        pool = ConnectionPool.from_url(
            settings.STORE_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=settings.STORE_CONNECTION_TIMEOUT,
            socket_timeout=settings.STORE_OPERATION_TIMEOUT,
            max_connections=settings.STORE_MAX_CONNECTIONS,
        )
    except ValueError as e:
        raise StoreConfigurationException(
            f"Invalid store URL: {settings.STORE_URL}", original_error=e
        ) from e

    logger.info(
        "Redis connection pool created",
        host=parsed_url.hostname,
        port=parsed_url.port,
        max_connections=settings.STORE_MAX_CONNECTIONS,
    )
    return Redis(connection_pool=pool)

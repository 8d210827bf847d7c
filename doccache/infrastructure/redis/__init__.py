"""
Redis Infrastructure Module

Connection management and exceptions for the Redis document store.
"""

from .connection_factory import create_redis_client
from .exceptions import (
    StoreException,
    StoreConnectionException,
    StoreOperationTimeoutException,
    StoreReplicationException,
    StoreConfigurationException,
)

__all__ = [
    "create_redis_client",
    "StoreException",
    "StoreConnectionException",
    "StoreOperationTimeoutException",
    "StoreReplicationException",
    "StoreConfigurationException",
]

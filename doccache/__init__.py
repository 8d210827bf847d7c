"""
doccache

Distributed TTL cache on top of a document store, with sliding and absolute
expiration, lazy expiry on read and a throttled background sweep.
"""

from .domain.cache.value_objects import CacheEntryOptions, RefreshVisibility
from .domain.cache.exceptions import (
    CacheException,
    NullArgumentError,
    InvalidConfigurationError,
    InvalidTemporalRangeError,
    MissingExpirationPolicyError,
    OperationCancelledError,
)
from .services.cache.distributed_cache import DistributedCache, CacheConfig
from .factory import create_distributed_cache

__all__ = [
    "CacheEntryOptions",
    "RefreshVisibility",
    "CacheException",
    "NullArgumentError",
    "InvalidConfigurationError",
    "InvalidTemporalRangeError",
    "MissingExpirationPolicyError",
    "OperationCancelledError",
    "DistributedCache",
    "CacheConfig",
    "create_distributed_cache",
]

"""Cache services: the distributed cache and its sweep scheduler."""

from .distributed_cache import DistributedCache, CacheConfig
from .sweep_scheduler import SweepScheduler

__all__ = ["DistributedCache", "CacheConfig", "SweepScheduler"]

"""
Cache Repository Interfaces

Abstract repository interface following DDD Repository pattern.
Defines the contract a document store must honor to back the cache.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .entities import CacheEntry
from .value_objects import RefreshVisibility


class EntryRepository(ABC):
    """
    Abstract repository for cache entry documents.

    One document per key, last write wins. Implementations must give
    read-after-write consistency per key.
    """

    @abstractmethod
    async def get_by_key(self, key: str) -> Optional[CacheEntry]:
        """Find the entry stored under ``key``, expired or not."""
        pass

    @abstractmethod
    async def upsert(
        self, entry: CacheEntry, refresh: RefreshVisibility = RefreshVisibility.NONE
    ) -> None:
        """Insert or fully replace the entry under ``entry.key``."""
        pass

    @abstractmethod
    async def delete_by_key(self, key: str) -> bool:
        """Delete the entry under ``key``. Deleting an absent key is not an error."""
        pass

    @abstractmethod
    async def delete_expired(self, before: datetime) -> int:
        """Delete every entry whose expiry is strictly before ``before``."""
        pass

    async def close(self) -> None:
        """Release store resources."""
        return None

"""
In-Memory Entry Repository

Process-local entry repository for embedded use and tests. Entries are
stored as documents, so callers never share mutable state with the store.
"""

import asyncio
from datetime import datetime
from typing import Dict, Any, Optional

from ...domain.cache.entities import CacheEntry
from ...domain.cache.repository_interfaces import EntryRepository
from ...domain.cache.value_objects import RefreshVisibility


class InMemoryEntryRepository(EntryRepository):
    """Dictionary-backed entry repository. Every write is visible immediately."""

    def __init__(self):
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def get_by_key(self, key: str) -> Optional[CacheEntry]:
        async with self._lock:
            document = self._documents.get(key)
        if document is None:
            return None
        return CacheEntry.from_document(document)

    async def upsert(
        self, entry: CacheEntry, refresh: RefreshVisibility = RefreshVisibility.NONE
    ) -> None:
        async with self._lock:
            self._documents[entry.key] = entry.to_document()

    async def delete_by_key(self, key: str) -> bool:
        async with self._lock:
            return self._documents.pop(key, None) is not None

    async def delete_expired(self, before: datetime) -> int:
        async with self._lock:
            expired = [
                key
                for key, document in self._documents.items()
                if CacheEntry.from_document(document).is_expired(before)
            ]
            for key in expired:
                del self._documents[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, key: str) -> bool:
        return key in self._documents

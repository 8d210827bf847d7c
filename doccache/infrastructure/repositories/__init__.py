"""Entry repository adapters."""

from .memory_entry_repository import InMemoryEntryRepository
from .redis_entry_repository import RedisEntryRepository

__all__ = ["InMemoryEntryRepository", "RedisEntryRepository"]

"""
Redis Entry Repository Implementation

Infrastructure implementation of the entry repository using Redis as a
document store.

Layout per index:
- ``{index}:entries``     hash, field = cache key, value = JSON document
- ``{index}:expires_at``  sorted set, member = cache key, score = expiry epoch

The sorted set is the range index the sweep queries; both structures are
always written in one MULTI/EXEC transaction.
"""

import json
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

import structlog
from opentelemetry import trace
from redis.asyncio import Redis
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
    RedisError,
)

from ...constants import ENTRIES_KEY_SUFFIX, EXPIRY_INDEX_KEY_SUFFIX, PURGE_BATCH_SIZE
from ...domain.cache.entities import CacheEntry
from ...domain.cache.repository_interfaces import EntryRepository
from ...domain.cache.value_objects import RefreshVisibility
from ..redis.exceptions import (
    StoreException,
    StoreConnectionException,
    StoreOperationTimeoutException,
    StoreReplicationException,
)

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

# Deletes one batch of expired ids. Range read and delete run atomically so
# an entry renewed between the two steps cannot be purged with its old
# expiry. Returns {ids matched, documents deleted}.
PURGE_EXPIRED_SCRIPT = """
local entries = KEYS[1]
local expiry_index = KEYS[2]
local batch_size = tonumber(ARGV[2])

local ids = redis.call(
    'ZRANGEBYSCORE', expiry_index, '-inf', '(' .. ARGV[1], 'LIMIT', 0, batch_size
)
if #ids == 0 then
    return {0, 0}
end

local deleted = redis.call('HDEL', entries, unpack(ids))
redis.call('ZREM', expiry_index, unpack(ids))

return {#ids, deleted}
"""


@contextmanager
def _store_errors(operation: str, key: Optional[str] = None):
    """Translate Redis client errors into store exceptions."""
    try:
        yield
    except RedisTimeoutError as e:
        raise StoreOperationTimeoutException(operation, key) from e
    except RedisConnectionError as e:
        raise StoreConnectionException(
            message=f"Document store connection failed during {operation}",
            original_error=e,
        ) from e
    except RedisError as e:
        raise StoreException(
            f"Document store {operation} failed: {str(e)}",
            error_code="STORE_OPERATION_ERROR",
            details={"operation": operation, "key": key},
        ) from e


class RedisEntryRepository(EntryRepository):
    """Redis implementation of the entry repository."""

    def __init__(
        self,
        client: Redis,
        index_name: str,
        replicas: int = 0,
        replica_timeout_ms: int = 1000,
    ):
        self._client = client
        self.index_name = index_name
        self.entries_key = f"{index_name}:{ENTRIES_KEY_SUFFIX}"
        self.expiry_key = f"{index_name}:{EXPIRY_INDEX_KEY_SUFFIX}"
        self.replicas = replicas
        self.replica_timeout_ms = replica_timeout_ms
        self._purge_script = client.register_script(PURGE_EXPIRED_SCRIPT)

    async def get_by_key(self, key: str) -> Optional[CacheEntry]:
        """Fetch the document stored under ``key``."""
        with tracer.start_as_current_span("doccache.store.get") as span:
            span.set_attribute("index", self.index_name)

            with _store_errors("get", key):
                raw = await self._client.hget(self.entries_key, key)

            span.set_attribute("found", raw is not None)
            if raw is None:
                return None

            return CacheEntry.from_document(json.loads(raw))

    async def upsert(
        self, entry: CacheEntry, refresh: RefreshVisibility = RefreshVisibility.NONE
    ) -> None:
        """Write the document and its expiry index in one transaction."""
        with tracer.start_as_current_span("doccache.store.upsert") as span:
            span.set_attribute("index", self.index_name)
            span.set_attribute("refresh", refresh.value)

            document = json.dumps(entry.to_document())

            with _store_errors("upsert", entry.key):
                async with self._client.pipeline(transaction=True) as pipe:
                    pipe.hset(self.entries_key, entry.key, document)
                    pipe.zadd(
                        self.expiry_key, {entry.key: entry.expires_at_time.timestamp()}
                    )
                    await pipe.execute()

                await self._wait_for_visibility(entry.key, refresh)

            logger.debug(
                "Cache document written",
                index=self.index_name,
                expires_at=entry.expires_at_time.isoformat(),
            )

    async def delete_by_key(self, key: str) -> bool:
        """Delete the document under ``key`` if present."""
        with tracer.start_as_current_span("doccache.store.delete") as span:
            span.set_attribute("index", self.index_name)

            with _store_errors("delete", key):
                async with self._client.pipeline(transaction=True) as pipe:
                    pipe.hdel(self.entries_key, key)
                    pipe.zrem(self.expiry_key, key)
                    removed, _ = await pipe.execute()

            span.set_attribute("deleted", bool(removed))
            return bool(removed)

    async def delete_expired(self, before: datetime) -> int:
        """
        Delete all documents whose expiry is strictly before ``before``.

        Runs the purge script once per batch of ``PURGE_BATCH_SIZE`` ids so a
        large backlog never blocks the server in a single call.
        """
        with tracer.start_as_current_span("doccache.store.delete_expired") as span:
            span.set_attribute("index", self.index_name)
            span.set_attribute("before", before.isoformat())

            cutoff = repr(before.timestamp())
            deleted = 0
            batches = 0

            with _store_errors("delete_expired"):
                while True:
                    matched, removed = await self._purge_script(
                        keys=[self.entries_key, self.expiry_key],
                        args=[cutoff, PURGE_BATCH_SIZE],
                    )
                    deleted += int(removed)
                    batches += 1
                    if int(matched) < PURGE_BATCH_SIZE:
                        break

            span.set_attribute("deleted_count", deleted)
            span.set_attribute("batches", batches)
            return deleted

    async def close(self) -> None:
        """Close the client and its connection pool."""
        with _store_errors("close"):
            await self._client.aclose()

    async def _wait_for_visibility(self, key: str, refresh: RefreshVisibility) -> None:
        """Wait for replicas to acknowledge a write, per refresh mode."""
        if refresh == RefreshVisibility.NONE or self.replicas <= 0:
            return

        acknowledged = await self._client.wait(self.replicas, self.replica_timeout_ms)
        if acknowledged >= self.replicas:
            return

        if refresh == RefreshVisibility.IMMEDIATE:
            raise StoreReplicationException(key, self.replicas, acknowledged)

        logger.warning(
            "Write not yet visible on all replicas",
            index=self.index_name,
            required=self.replicas,
            acknowledged=acknowledged,
        )

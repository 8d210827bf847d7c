"""
Distributed Cache Service

High-level cache service that applies the expiration policy on top of an
entry repository and triggers the expired entry sweep after every
operation.
"""

import asyncio
import inspect
import json
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import structlog
from opentelemetry import trace

from ...constants import DEFAULT_MIN_LENGTH_COMPRESS, DEFAULT_SLIDING_EXPIRATION
from ...core.clock import Clock, SystemClock
from ...core.config import Settings
from ...domain.cache import expiration_policy
from ...domain.cache.codec import PayloadCodec
from ...domain.cache.entities import CacheEntry
from ...domain.cache.exceptions import (
    InvalidConfigurationError,
    NullArgumentError,
    OperationCancelledError,
)
from ...domain.cache.repository_interfaces import EntryRepository
from ...domain.cache.value_objects import CacheEntryOptions, RefreshVisibility
from .sweep_scheduler import SweepScheduler

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class CacheConfig:
    """Typed cache configuration consumed by DistributedCache."""

    index_name: str
    default_sliding_expiration: timedelta = DEFAULT_SLIDING_EXPIRATION
    expired_items_deletion_interval: Optional[timedelta] = None
    compress: bool = False
    min_length_compress: int = DEFAULT_MIN_LENGTH_COMPRESS
    refresh: RefreshVisibility = RefreshVisibility.NONE

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheConfig":
        interval = settings.EXPIRED_ITEMS_DELETION_INTERVAL_SECONDS
        return cls(
            index_name=settings.INDEX_NAME,
            default_sliding_expiration=timedelta(
                seconds=settings.DEFAULT_SLIDING_EXPIRATION_SECONDS
            ),
            expired_items_deletion_interval=timedelta(seconds=interval)
            if interval is not None
            else None,
            compress=settings.COMPRESS,
            min_length_compress=settings.MIN_LENGTH_COMPRESS,
            refresh=settings.REFRESH,
        )

    def validate(self) -> None:
        """Fail fast on unusable configuration."""
        if not self.index_name:
            raise InvalidConfigurationError(
                "index_name cannot be empty or None.", setting="index_name"
            )
        expiration_policy.validate_default_sliding(self.default_sliding_expiration)


class DistributedCache:
    """
    TTL cache over a shared document store.

    Entries expire lazily: a read that finds a stale entry reports a miss
    and leaves the document in place for the periodic sweep to reclaim.
    Every operation accepts an optional ``cancel_event``; if it is set
    before the store is touched the operation raises OperationCancelledError
    without side effects.
    """

    def __init__(
        self,
        repository: EntryRepository,
        config: CacheConfig,
        clock: Optional[Clock] = None,
    ):
        if repository is None:
            raise NullArgumentError("repository")
        if config is None:
            raise NullArgumentError("config")

        config.validate()

        self.repository = repository
        self.config = config
        self.clock = clock or SystemClock()
        self.codec = PayloadCodec(config.compress, config.min_length_compress)
        self.sweeper = SweepScheduler(
            repository, config.expired_items_deletion_interval, self.clock
        )

    async def __aenter__(self) -> "DistributedCache":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Wait for the running sweep and release the store."""
        await self.sweeper.aclose()
        await self.repository.close()

    # Byte operations

    async def get(
        self, key: str, cancel_event: Optional[asyncio.Event] = None
    ) -> Optional[bytes]:
        """
        Get the bytes stored under ``key``.

        Args:
            key: Exact cache key
            cancel_event: Optional cancellation signal

        Returns:
            The stored bytes, or None if absent or expired
        """
        _require(key, "key")
        _check_cancelled("get", key, cancel_event)

        with tracer.start_as_current_span("doccache.get") as span:
            entry = await self._load_live_entry(key)
            span.set_attribute("cache_hit", entry is not None)

            self._scan_for_expired_items_if_required()

            if entry is None:
                logger.debug("Cache miss", key=key)
                return None

            logger.debug("Cache hit", key=key)
            return self.codec.decode(entry.value)

    async def set(
        self,
        key: str,
        value: bytes,
        options: CacheEntryOptions,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        """
        Store ``value`` under ``key``, replacing any previous entry.

        Options without any expiration get the default sliding window.

        Raises:
            NullArgumentError: If key, value or options is None
            InvalidTemporalRangeError: If the absolute expiration is not in the future
        """
        _require(key, "key")
        _require(value, "value")
        _require(options, "options")
        if not isinstance(options, CacheEntryOptions):
            raise TypeError("options must be a CacheEntryOptions instance")
        _check_cancelled("set", key, cancel_event)

        with tracer.start_as_current_span("doccache.set") as span:
            entry = self._create_entry(key, bytes(value), options)
            span.set_attribute("value_size", len(value))
            span.set_attribute("expires_at", entry.expires_at_time.isoformat())

            await self.repository.upsert(entry, self.config.refresh)

            logger.debug(
                "Cache entry set",
                key=key,
                expires_at=entry.expires_at_time.isoformat(),
                sliding=entry.sliding_expiration is not None,
                absolute=entry.absolute_expiration is not None,
            )

            self._scan_for_expired_items_if_required()

    async def refresh(
        self, key: str, cancel_event: Optional[asyncio.Event] = None
    ) -> None:
        """Slide the expiry of ``key`` without reading its value."""
        _require(key, "key")
        _check_cancelled("refresh", key, cancel_event)

        with tracer.start_as_current_span("doccache.refresh") as span:
            entry = await self._load_live_entry(key)
            span.set_attribute("found", entry is not None)

            self._scan_for_expired_items_if_required()

    async def remove(
        self, key: str, cancel_event: Optional[asyncio.Event] = None
    ) -> None:
        """Delete ``key``. Removing an absent key is not an error."""
        _require(key, "key")
        _check_cancelled("remove", key, cancel_event)

        with tracer.start_as_current_span("doccache.remove") as span:
            deleted = await self.repository.delete_by_key(key)
            span.set_attribute("deleted", deleted)

            self._scan_for_expired_items_if_required()

    # Typed helpers

    async def get_string(
        self,
        key: str,
        encoding: str = "utf-8",
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Optional[str]:
        value = await self.get(key, cancel_event=cancel_event)
        return value.decode(encoding) if value is not None else None

    async def set_string(
        self,
        key: str,
        value: str,
        options: Optional[CacheEntryOptions] = None,
        encoding: str = "utf-8",
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        _require(value, "value")
        await self.set(
            key,
            value.encode(encoding),
            options or CacheEntryOptions(),
            cancel_event=cancel_event,
        )

    async def get_json(
        self, key: str, cancel_event: Optional[asyncio.Event] = None
    ) -> Optional[Any]:
        """Get a JSON-serialized object. Returns None on a miss."""
        value = await self.get(key, cancel_event=cancel_event)
        return json.loads(value) if value is not None else None

    async def set_json(
        self,
        key: str,
        obj: Any,
        options: Optional[CacheEntryOptions] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        """Store ``obj`` serialized as JSON."""
        payload = json.dumps(obj, default=str).encode("utf-8")
        await self.set(
            key, payload, options or CacheEntryOptions(), cancel_event=cancel_event
        )

    async def get_or_set_json(
        self,
        key: str,
        factory: Callable[[], Union[Any, Awaitable[Any]]],
        options: Optional[CacheEntryOptions] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """
        Get a cached object, computing and storing it on a miss.

        Args:
            key: Cache key
            factory: Sync or async callable producing the object
            options: Expiration options for a newly stored object
            cancel_event: Optional cancellation signal

        Returns:
            The cached or freshly computed object
        """
        cached = await self.get_json(key, cancel_event=cancel_event)
        if cached is not None:
            return cached

        obj = factory()
        if inspect.isawaitable(obj):
            obj = await obj

        await self.set_json(key, obj, options, cancel_event=cancel_event)
        return obj

    def get_stats(self) -> Dict[str, Any]:
        """Get cache and sweep statistics."""
        return {"index_name": self.config.index_name, "sweep": self.sweeper.get_stats()}

    # Internals

    def _create_entry(
        self, key: str, value: bytes, options: CacheEntryOptions
    ) -> CacheEntry:
        options = expiration_policy.apply_default_sliding(
            options, self.config.default_sliding_expiration
        )
        now = self.clock.utcnow()

        absolute = expiration_policy.compute_absolute_expiration(now, options)
        expiration_policy.validate_expiration(options.sliding_expiration, absolute)

        return CacheEntry(
            key=key,
            value=self.codec.encode(value),
            expires_at_time=expiration_policy.compute_expires_at(
                now, options.sliding_expiration, absolute
            ),
            sliding_expiration=options.sliding_expiration,
            absolute_expiration=absolute,
        )

    async def _load_live_entry(self, key: str) -> Optional[CacheEntry]:
        """Fetch an unexpired entry, persisting its renewed expiry if it slid."""
        entry = await self.repository.get_by_key(key)
        now = self.clock.utcnow()

        if entry is None or entry.is_expired(now):
            return None

        if expiration_policy.renew_on_access(entry, now):
            await self.repository.upsert(entry, self.config.refresh)
            logger.debug(
                "Cache entry renewed",
                key=key,
                expires_at=entry.expires_at_time.isoformat(),
            )

        return entry

    def _scan_for_expired_items_if_required(self) -> None:
        self.sweeper.maybe_trigger_sweep(self.clock.utcnow())


def _require(value: Any, name: str) -> None:
    if value is None:
        raise NullArgumentError(name)


def _check_cancelled(
    operation: str, key: str, cancel_event: Optional[asyncio.Event]
) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(operation, key)

"""
Unit tests for the Distributed Cache Service.

Drives the cache over the in-memory repository with a manual clock and
checks expiration, renewal, key handling and cancellation behavior.
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from doccache.domain.cache.exceptions import (
    InvalidConfigurationError,
    InvalidTemporalRangeError,
    NullArgumentError,
    OperationCancelledError,
)
from doccache.domain.cache.value_objects import CacheEntryOptions, RefreshVisibility
from doccache.services.cache.distributed_cache import CacheConfig, DistributedCache

VALUE = b"Hello, World!"


class TestDistributedCacheConstruction:
    """Test configuration checks at construction."""

    def test_empty_index_name(self, repository, clock):
        with pytest.raises(InvalidConfigurationError, match="index_name"):
            DistributedCache(repository, CacheConfig(index_name=""), clock=clock)

    def test_non_positive_default_sliding(self, repository, clock):
        config = CacheConfig(
            index_name="test", default_sliding_expiration=timedelta(0)
        )
        with pytest.raises(InvalidConfigurationError, match="must be positive"):
            DistributedCache(repository, config, clock=clock)

    def test_deletion_interval_below_floor(self, repository, clock):
        config = CacheConfig(
            index_name="test", expired_items_deletion_interval=timedelta(minutes=4)
        )
        with pytest.raises(InvalidConfigurationError, match="5 minutes"):
            DistributedCache(repository, config, clock=clock)

    def test_deletion_interval_default(self, repository, cache_config, clock):
        cache = DistributedCache(repository, cache_config, clock=clock)
        assert cache.sweeper.scan_interval == timedelta(minutes=30)

    def test_missing_repository(self, cache_config):
        with pytest.raises(NullArgumentError):
            DistributedCache(None, cache_config)


class TestGetAndSet:
    """Test basic reads and writes."""

    @pytest.mark.asyncio
    async def test_missing_key_returns_none(self, cache):
        assert await cache.get("NonExisting") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self, cache):
        await cache.set("k", VALUE, CacheEntryOptions(sliding_expiration=timedelta(minutes=1)))
        assert await cache.get("k") == VALUE

    @pytest.mark.asyncio
    async def test_empty_payload(self, cache):
        await cache.set("empty", b"", CacheEntryOptions())
        assert await cache.get("empty") == b""

    @pytest.mark.asyncio
    async def test_default_sliding_applied(self, cache, repository, clock):
        await cache.set("k", VALUE, CacheEntryOptions())

        entry = await repository.get_by_key("k")
        assert entry.sliding_expiration == timedelta(minutes=20)
        assert entry.absolute_expiration is None
        assert entry.expires_at_time == clock.utcnow() + timedelta(minutes=20)

    @pytest.mark.asyncio
    async def test_configured_default_sliding_applied(self, repository, clock):
        config = CacheConfig(
            index_name="test", default_sliding_expiration=timedelta(minutes=3)
        )
        cache = DistributedCache(repository, config, clock=clock)

        await cache.set("k", VALUE, CacheEntryOptions())

        entry = await repository.get_by_key("k")
        assert entry.sliding_expiration == timedelta(minutes=3)

    @pytest.mark.asyncio
    async def test_stored_value_is_base64(self, cache, repository):
        await cache.set("k", VALUE, CacheEntryOptions())
        entry = await repository.get_by_key("k")
        assert entry.value == "SGVsbG8sIFdvcmxkIQ=="

    @pytest.mark.asyncio
    async def test_compressed_storage(self, repository, clock):
        config = CacheConfig(index_name="test", compress=True, min_length_compress=16)
        cache = DistributedCache(repository, config, clock=clock)
        payload = b"x" * 4096

        await cache.set("big", payload, CacheEntryOptions())

        entry = await repository.get_by_key("big")
        assert entry.value.startswith("[Compress]")
        assert await cache.get("big") == payload

    @pytest.mark.asyncio
    async def test_overwrite_replaces_policy(self, cache, repository, clock):
        await cache.set(
            "k",
            VALUE,
            CacheEntryOptions(
                sliding_expiration=timedelta(seconds=5),
                absolute_expiration=clock.utcnow() + timedelta(seconds=20),
            ),
        )
        await cache.set(
            "k",
            b"new",
            CacheEntryOptions(absolute_expiration_relative_to_now=timedelta(minutes=30)),
        )

        entry = await repository.get_by_key("k")
        assert entry.sliding_expiration is None
        assert entry.absolute_expiration == clock.utcnow() + timedelta(minutes=30)
        assert await cache.get("k") == b"new"

    @pytest.mark.asyncio
    async def test_absolute_in_past_raises_and_keeps_existing(self, cache, clock):
        await cache.set("k", VALUE, CacheEntryOptions())

        with pytest.raises(
            InvalidTemporalRangeError,
            match="The absolute expiration value must be in the future.",
        ):
            await cache.set(
                "k",
                b"replacement",
                CacheEntryOptions(absolute_expiration=clock.utcnow() - timedelta(hours=1)),
            )

        assert await cache.get("k") == VALUE

    @pytest.mark.asyncio
    async def test_absolute_equal_to_now_raises(self, cache, repository, clock):
        with pytest.raises(InvalidTemporalRangeError):
            await cache.set(
                "k", VALUE, CacheEntryOptions(absolute_expiration=clock.utcnow())
            )
        assert "k" not in repository

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "args",
        [
            (None, VALUE, CacheEntryOptions()),
            ("k", None, CacheEntryOptions()),
            ("k", VALUE, None),
        ],
    )
    async def test_set_null_arguments(self, cache, args):
        with pytest.raises(NullArgumentError):
            await cache.set(*args)

    @pytest.mark.asyncio
    async def test_null_key_on_other_operations(self, cache):
        for operation in (cache.get, cache.refresh, cache.remove):
            with pytest.raises(NullArgumentError):
                await operation(None)


class TestKeyHandling:
    """Keys are exact-match."""

    @pytest.mark.asyncio
    async def test_keys_are_case_sensitive(self, cache):
        await cache.set(
            "abc", VALUE, CacheEntryOptions(absolute_expiration_relative_to_now=timedelta(hours=1))
        )
        assert await cache.get("ABC") is None
        assert await cache.get("abc") == VALUE

    @pytest.mark.asyncio
    async def test_surrounding_spaces_are_significant(self, cache):
        await cache.set(
            "  key  ", VALUE, CacheEntryOptions(absolute_expiration_relative_to_now=timedelta(hours=1))
        )
        assert await cache.get("  key  ") == VALUE
        assert await cache.get("key") is None


class TestExpiration:
    """Test absolute, sliding and combined expiration through the cache."""

    @pytest.mark.asyncio
    async def test_sliding_scenario(self, cache, repository, clock):
        start = clock.utcnow()
        await cache.set("k", VALUE, CacheEntryOptions(sliding_expiration=timedelta(seconds=10)))

        clock.advance(timedelta(seconds=5))
        assert await cache.get("k") == VALUE
        entry = await repository.get_by_key("k")
        assert entry.expires_at_time == start + timedelta(seconds=15)

        clock.advance(timedelta(seconds=11))
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_expired_read_does_not_renew_or_delete(self, cache, repository, clock):
        start = clock.utcnow()
        await cache.set("k", VALUE, CacheEntryOptions(sliding_expiration=timedelta(seconds=10)))
        await cache.sweeper.wait_idle()

        clock.advance(timedelta(seconds=11))
        assert await cache.get("k") is None
        await cache.sweeper.wait_idle()

        entry = await repository.get_by_key("k")
        assert entry is not None
        assert entry.expires_at_time == start + timedelta(seconds=10)

    @pytest.mark.asyncio
    async def test_combined_renewal_capped(self, cache, repository, clock):
        start = clock.utcnow()
        deadline = start + timedelta(seconds=20)
        await cache.set(
            "k",
            VALUE,
            CacheEntryOptions(
                sliding_expiration=timedelta(seconds=5), absolute_expiration=deadline
            ),
        )
        entry = await repository.get_by_key("k")
        assert entry.expires_at_time == start + timedelta(seconds=5)

        for offset in (4, 8, 12, 16):
            clock.now = start + timedelta(seconds=offset)
            assert await cache.get("k") == VALUE

        clock.now = start + timedelta(seconds=18)
        assert await cache.get("k") == VALUE
        entry = await repository.get_by_key("k")
        assert entry.expires_at_time == deadline

        clock.now = start + timedelta(seconds=19)
        assert await cache.get("k") == VALUE
        entry = await repository.get_by_key("k")
        assert entry.expires_at_time == deadline

        clock.now = start + timedelta(seconds=21)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_absolute_only_not_extended(self, cache, repository, clock):
        expected = clock.utcnow() + timedelta(seconds=30)
        await cache.set(
            "k",
            VALUE,
            CacheEntryOptions(absolute_expiration_relative_to_now=timedelta(seconds=30)),
        )

        clock.advance(timedelta(seconds=25))
        assert await cache.get("k") == VALUE

        entry = await repository.get_by_key("k")
        assert entry.expires_at_time == expected
        assert entry.absolute_expiration == expected

        clock.advance(timedelta(seconds=10))
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_set_updates_absolute_expiration(self, cache, repository, clock):
        first = clock.utcnow() + timedelta(seconds=10)
        await cache.set("k", VALUE, CacheEntryOptions(absolute_expiration=first))
        assert (await repository.get_by_key("k")).expires_at_time == first

        second = clock.utcnow() + timedelta(minutes=30)
        await cache.set("k", VALUE, CacheEntryOptions(absolute_expiration=second))
        assert (await repository.get_by_key("k")).expires_at_time == second

    @pytest.mark.asyncio
    async def test_unchanged_renewal_is_not_written(self, cache, repository, clock):
        await cache.set("k", VALUE, CacheEntryOptions(sliding_expiration=timedelta(seconds=10)))

        with patch.object(repository, "upsert", wraps=repository.upsert) as upsert:
            assert await cache.get("k") == VALUE
            upsert.assert_not_called()

            clock.advance(timedelta(seconds=1))
            assert await cache.get("k") == VALUE
            upsert.assert_called_once()


class TestRefreshAndRemove:
    """Test refresh and remove."""

    @pytest.mark.asyncio
    async def test_refresh_slides_expiry(self, cache, repository, clock):
        start = clock.utcnow()
        await cache.set("k", VALUE, CacheEntryOptions(sliding_expiration=timedelta(seconds=10)))

        clock.advance(timedelta(seconds=5))
        assert await cache.refresh("k") is None

        entry = await repository.get_by_key("k")
        assert entry.sliding_expiration == timedelta(seconds=10)
        assert entry.absolute_expiration is None
        assert entry.expires_at_time == start + timedelta(seconds=15)

    @pytest.mark.asyncio
    async def test_refresh_absent_key_is_noop(self, cache, repository):
        await cache.refresh("missing")
        assert len(repository) == 0

    @pytest.mark.asyncio
    async def test_remove(self, cache, repository):
        await cache.set("k", VALUE, CacheEntryOptions(sliding_expiration=timedelta(seconds=10)))

        await cache.remove("k")

        assert await repository.get_by_key("k") is None
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_remove_absent_key(self, cache):
        await cache.remove("never-set")
        assert await cache.get("never-set") is None


class TestCancellation:
    """A set cancel event short-circuits before the store is touched."""

    @pytest.mark.asyncio
    async def test_cancelled_operations_do_not_touch_store(self, cache_config, clock):
        repository = AsyncMock()
        cache = DistributedCache(repository, cache_config, clock=clock)
        cancelled = asyncio.Event()
        cancelled.set()

        with pytest.raises(OperationCancelledError):
            await cache.get("k", cancel_event=cancelled)
        with pytest.raises(OperationCancelledError):
            await cache.set("k", VALUE, CacheEntryOptions(), cancel_event=cancelled)
        with pytest.raises(OperationCancelledError):
            await cache.refresh("k", cancel_event=cancelled)
        with pytest.raises(OperationCancelledError):
            await cache.remove("k", cancel_event=cancelled)

        repository.get_by_key.assert_not_called()
        repository.upsert.assert_not_called()
        repository.delete_by_key.assert_not_called()
        repository.delete_expired.assert_not_called()

    @pytest.mark.asyncio
    async def test_unset_event_allows_operation(self, cache):
        event = asyncio.Event()
        await cache.set("k", VALUE, CacheEntryOptions(), cancel_event=event)
        assert await cache.get("k", cancel_event=event) == VALUE


class TestStoreFailures:
    """Store errors propagate to the caller."""

    @pytest.mark.asyncio
    async def test_get_propagates_store_error(self, cache_config, clock):
        repository = AsyncMock()
        repository.get_by_key.side_effect = RuntimeError("store down")
        cache = DistributedCache(repository, cache_config, clock=clock)

        with pytest.raises(RuntimeError, match="store down"):
            await cache.get("k")

    @pytest.mark.asyncio
    async def test_refresh_mode_passed_to_store(self, clock):
        repository = AsyncMock()
        repository.delete_expired.return_value = 0
        config = CacheConfig(index_name="test", refresh=RefreshVisibility.IMMEDIATE)
        cache = DistributedCache(repository, config, clock=clock)

        await cache.set("k", VALUE, CacheEntryOptions())
        await cache.sweeper.wait_idle()

        entry, refresh = repository.upsert.call_args[0]
        assert entry.key == "k"
        assert refresh is RefreshVisibility.IMMEDIATE


class TestTypedHelpers:
    """Test string and JSON helpers."""

    @pytest.mark.asyncio
    async def test_string_round_trip(self, cache):
        await cache.set_string("greeting", "héllo")
        assert await cache.get_string("greeting") == "héllo"
        assert await cache.get_string("missing") is None

    @pytest.mark.asyncio
    async def test_json_round_trip(self, cache):
        await cache.set_json("obj", {"name": "test", "items": [1, 2, 3]})
        assert await cache.get_json("obj") == {"name": "test", "items": [1, 2, 3]}

    @pytest.mark.asyncio
    async def test_get_or_set_json_calls_factory_once(self, cache):
        calls = []

        async def factory():
            calls.append(1)
            return {"computed": True}

        first = await cache.get_or_set_json("obj", factory)
        second = await cache.get_or_set_json("obj", factory)

        assert first == second == {"computed": True}
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_get_or_set_json_sync_factory(self, cache):
        result = await cache.get_or_set_json(
            "obj",
            lambda: [1, 2],
            CacheEntryOptions(sliding_expiration=timedelta(seconds=30)),
        )
        assert result == [1, 2]
        assert await cache.get_json("obj") == [1, 2]


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_async_context_manager_closes_store(self, cache_config, clock):
        repository = AsyncMock()
        repository.delete_expired.return_value = 0

        async with DistributedCache(repository, cache_config, clock=clock) as cache:
            await cache.remove("k")

        repository.close.assert_awaited_once()
        assert cache.sweeper.is_sweeping is False

    @pytest.mark.asyncio
    async def test_get_stats(self, cache):
        await cache.set("k", b"v", CacheEntryOptions())
        await cache.sweeper.wait_idle()

        stats = cache.get_stats()

        assert stats["index_name"] == "test_cache"
        assert stats["sweep"]["sweeps_started"] == 1
        assert stats["sweep"]["is_sweeping"] is False

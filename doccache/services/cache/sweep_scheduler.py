"""
Expired Entry Sweep Scheduler

Piggybacks store-wide cleanup on foreground traffic: every cache operation
asks the scheduler whether a sweep is due, and at most one purge runs at a
time, launched at most once per interval.
"""

import asyncio
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import structlog
from opentelemetry import trace

from ...constants import (
    DEFAULT_EXPIRED_ITEMS_DELETION_INTERVAL,
    MINIMUM_EXPIRED_ITEMS_DELETION_INTERVAL,
)
from ...core.clock import Clock, SystemClock
from ...domain.cache.exceptions import InvalidConfigurationError
from ...domain.cache.repository_interfaces import EntryRepository

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class SweepScheduler:
    """
    Throttled launcher of background purges.

    The due-check and the launch form one transition guarded by a
    non-blocking lock, so concurrent callers never start redundant purges.
    The purge runs as a detached asyncio task: cancelling the operation that
    triggered it does not cancel the purge, and its failures are only logged.
    """

    def __init__(
        self,
        repository: EntryRepository,
        scan_interval: Optional[timedelta] = None,
        clock: Optional[Clock] = None,
    ):
        if scan_interval is not None and scan_interval < MINIMUM_EXPIRED_ITEMS_DELETION_INTERVAL:
            raise InvalidConfigurationError(
                "expired_items_deletion_interval cannot be less than the minimum value of "
                f"{MINIMUM_EXPIRED_ITEMS_DELETION_INTERVAL.total_seconds() / 60:g} minutes.",
                setting="expired_items_deletion_interval",
                value=scan_interval,
            )

        self.repository = repository
        self.scan_interval = scan_interval or DEFAULT_EXPIRED_ITEMS_DELETION_INTERVAL
        self.clock = clock or SystemClock()
        self.last_scan_time = datetime.min.replace(tzinfo=timezone.utc)

        self._trigger_lock = threading.Lock()
        self._purge_task: Optional[asyncio.Task] = None
        self._closed = False
        self._stats = {
            "sweeps_started": 0,
            "sweeps_completed": 0,
            "sweeps_failed": 0,
            "entries_purged": 0,
            "last_error": None,
        }

    @property
    def is_sweeping(self) -> bool:
        return self._purge_task is not None and not self._purge_task.done()

    def maybe_trigger_sweep(self, now: Optional[datetime] = None) -> bool:
        """
        Launch a purge if the scan interval has elapsed.

        Must be called from a running event loop.

        Args:
            now: Current UTC time (defaults to the scheduler clock)

        Returns:
            True if this call launched a purge
        """
        if self._closed:
            return False

        if not self._trigger_lock.acquire(blocking=False):
            return False

        try:
            if self.is_sweeping:
                return False

            now = now or self.clock.utcnow()
            if now - self.last_scan_time <= self.scan_interval:
                return False

            purge = self._run_purge(now)
            try:
                self._purge_task = asyncio.create_task(purge)
            except RuntimeError:
                purge.close()
                raise
            self._purge_task.add_done_callback(self._on_purge_done)

            # Only advance once a purge is actually running
            self.last_scan_time = now
            self._stats["sweeps_started"] += 1
        finally:
            self._trigger_lock.release()

        logger.info("Expired entry sweep started", scan_time=now.isoformat())
        return True

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete every entry that expired before ``now``."""
        now = now or self.clock.utcnow()
        return await self.repository.delete_expired(now)

    async def wait_idle(self) -> None:
        """Wait for the in-flight purge, if any, to finish."""
        task = self._purge_task
        if task is not None and not task.done():
            await asyncio.wait([task])

    async def aclose(self) -> None:
        """Stop launching sweeps and wait for the running one."""
        self._closed = True
        await self.wait_idle()

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self._stats,
            "last_scan_time": self.last_scan_time.isoformat(),
            "scan_interval_seconds": self.scan_interval.total_seconds(),
            "is_sweeping": self.is_sweeping,
        }

    async def _run_purge(self, now: datetime) -> None:
        with tracer.start_as_current_span("doccache.sweep") as span:
            try:
                deleted = await self.purge_expired(now)
                self._stats["sweeps_completed"] += 1
                self._stats["entries_purged"] += deleted
                span.set_attribute("deleted_count", deleted)
                logger.info("Expired entry sweep finished", deleted_count=deleted)

            except Exception as e:
                self._stats["sweeps_failed"] += 1
                self._stats["last_error"] = str(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                logger.exception("Expired entry sweep failed", error=str(e))

    def _on_purge_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.warning("Expired entry sweep cancelled")

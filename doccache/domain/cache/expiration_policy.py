"""
Cache Expiration Policy

Pure functions that decide when a cache entry expires.

An entry carries a sliding window, an absolute deadline, or both.
Sliding entries are renewed on every successful access, but never past
their absolute deadline. Stale entries are never renewed.
"""

from datetime import datetime, timedelta
from typing import Optional

from .entities import CacheEntry
from .exceptions import (
    InvalidConfigurationError,
    InvalidTemporalRangeError,
    MissingExpirationPolicyError,
)
from .value_objects import CacheEntryOptions


def compute_absolute_expiration(
    now: datetime, options: CacheEntryOptions
) -> Optional[datetime]:
    """
    Resolve the absolute deadline of a write.

    Args:
        now: Current UTC time
        options: Expiration options supplied with the write

    Returns:
        The absolute deadline, or None when the write has none

    Raises:
        InvalidTemporalRangeError: If the absolute expiration is not after now
    """
    if options.absolute_expiration_relative_to_now is not None:
        return now + options.absolute_expiration_relative_to_now

    if options.absolute_expiration is not None:
        if options.absolute_expiration <= now:
            raise InvalidTemporalRangeError(
                "The absolute expiration value must be in the future.",
                options.absolute_expiration,
            )
        return options.absolute_expiration

    return None


def validate_expiration(
    sliding: Optional[timedelta], absolute: Optional[datetime]
) -> None:
    """Require at least one expiration mode."""
    if sliding is None and absolute is None:
        raise MissingExpirationPolicyError()


def validate_default_sliding(value: timedelta) -> timedelta:
    """Check the configured fallback sliding window."""
    if value <= timedelta(0):
        raise InvalidConfigurationError(
            "The sliding expiration value must be positive.",
            setting="default_sliding_expiration",
            value=value,
        )
    return value


def apply_default_sliding(
    options: CacheEntryOptions, default_sliding: timedelta
) -> CacheEntryOptions:
    """Give options without any expiration the default sliding window."""
    if options.has_expiration:
        return options
    return CacheEntryOptions(sliding_expiration=default_sliding)


def compute_expires_at(
    now: datetime, sliding: Optional[timedelta], absolute: Optional[datetime]
) -> datetime:
    """Expiry time of a freshly written entry."""
    validate_expiration(sliding, absolute)

    if sliding is None:
        return absolute

    expires_at = now + sliding
    if absolute is not None and expires_at > absolute:
        return absolute
    return expires_at


def renew_on_access(entry: CacheEntry, now: datetime) -> bool:
    """
    Slide the expiry of an accessed entry.

    Mutates ``entry.expires_at_time`` in place.

    Returns:
        True if the expiry changed and the entry needs persisting
    """
    if entry.sliding_expiration is None:
        return False

    if now > entry.expires_at_time:
        return False

    renewed = now + entry.sliding_expiration
    if entry.absolute_expiration is not None and renewed > entry.absolute_expiration:
        renewed = entry.absolute_expiration

    if renewed == entry.expires_at_time:
        return False

    entry.expires_at_time = renewed
    return True

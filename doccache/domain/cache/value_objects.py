"""
Cache Value Objects

Immutable value objects for the cache domain.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .exceptions import InvalidTemporalRangeError


class RefreshVisibility(str, Enum):
    """How long a write waits before it is considered visible to readers."""

    IMMEDIATE = "immediate"
    DEFERRED = "deferred"
    NONE = "none"


@dataclass(frozen=True)
class CacheEntryOptions:
    """
    Expiration options supplied with a write.

    Any combination of the three fields may be set. When both absolute
    fields are given, the relative one wins.
    """

    absolute_expiration: Optional[datetime] = None
    absolute_expiration_relative_to_now: Optional[timedelta] = None
    sliding_expiration: Optional[timedelta] = None

    def __post_init__(self) -> None:
        """Validate durations."""
        if (
            self.absolute_expiration_relative_to_now is not None
            and self.absolute_expiration_relative_to_now <= timedelta(0)
        ):
            raise InvalidTemporalRangeError(
                "The relative expiration value must be positive.",
                self.absolute_expiration_relative_to_now,
            )
        if self.sliding_expiration is not None and self.sliding_expiration <= timedelta(0):
            raise InvalidTemporalRangeError(
                "The sliding expiration value must be positive.",
                self.sliding_expiration,
            )
        if self.absolute_expiration is not None and self.absolute_expiration.tzinfo is None:
            raise InvalidTemporalRangeError(
                "The absolute expiration value must be timezone-aware.",
                self.absolute_expiration,
            )

    @property
    def has_expiration(self) -> bool:
        """Whether any expiration field is set."""
        return (
            self.absolute_expiration is not None
            or self.absolute_expiration_relative_to_now is not None
            or self.sliding_expiration is not None
        )

    def with_sliding_expiration(self, sliding: timedelta) -> "CacheEntryOptions":
        return replace(self, sliding_expiration=sliding)

    def with_absolute_expiration(self, absolute: datetime) -> "CacheEntryOptions":
        return replace(self, absolute_expiration=absolute)

    def with_absolute_expiration_relative_to_now(
        self, relative: timedelta
    ) -> "CacheEntryOptions":
        return replace(self, absolute_expiration_relative_to_now=relative)

    def __str__(self) -> str:
        parts = []
        if self.sliding_expiration is not None:
            parts.append(f"sliding={self.sliding_expiration.total_seconds()}s")
        if self.absolute_expiration_relative_to_now is not None:
            parts.append(
                f"relative={self.absolute_expiration_relative_to_now.total_seconds()}s"
            )
        if self.absolute_expiration is not None:
            parts.append(f"absolute={self.absolute_expiration.isoformat()}")
        return ", ".join(parts) or "no expiration"

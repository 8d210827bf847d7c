"""
Cache Domain Entities

The persisted cache entry and its document representation.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Dict, Any


@dataclass
class CacheEntry:
    """
    Cache entry entity.

    One document per key in the store. ``value`` holds the encoded payload;
    ``expires_at_time`` drives both lazy expiry on read and the sweep.
    """

    key: str
    value: str
    expires_at_time: datetime
    sliding_expiration: Optional[timedelta] = None
    absolute_expiration: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        """Check whether the entry is stale at ``now``."""
        return self.expires_at_time < now

    def to_document(self) -> Dict[str, Any]:
        """Serialize into the JSON document stored under ``key``."""
        return {
            "id": self.key,
            "value": self.value,
            "expires_at_time": self.expires_at_time.isoformat(),
            "sliding_expiration_seconds": self.sliding_expiration.total_seconds()
            if self.sliding_expiration is not None
            else None,
            "absolute_expiration": self.absolute_expiration.isoformat()
            if self.absolute_expiration is not None
            else None,
        }

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "CacheEntry":
        """Rebuild an entry from its stored document."""
        sliding = document.get("sliding_expiration_seconds")
        absolute = document.get("absolute_expiration")

        return cls(
            key=document["id"],
            value=document["value"],
            expires_at_time=datetime.fromisoformat(document["expires_at_time"]),
            sliding_expiration=timedelta(seconds=sliding) if sliding is not None else None,
            absolute_expiration=datetime.fromisoformat(absolute)
            if absolute is not None
            else None,
        )

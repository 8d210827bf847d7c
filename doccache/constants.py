"""
doccache constants

Shared defaults and limits for the cache engine.
"""

from datetime import timedelta

# Sweep scheduling
MINIMUM_EXPIRED_ITEMS_DELETION_INTERVAL = timedelta(minutes=5)
DEFAULT_EXPIRED_ITEMS_DELETION_INTERVAL = timedelta(minutes=30)

# Applied when a write carries no expiration at all
DEFAULT_SLIDING_EXPIRATION = timedelta(minutes=20)

# Payload codec
COMPRESSED_PAYLOAD_HEADER = "[Compress]"
DEFAULT_MIN_LENGTH_COMPRESS = 1024

# Redis document layout
ENTRIES_KEY_SUFFIX = "entries"
EXPIRY_INDEX_KEY_SUFFIX = "expires_at"
PURGE_BATCH_SIZE = 500

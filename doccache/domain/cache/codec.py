"""
Payload Codec

Encodes raw cache payloads into the string form kept in the document store.
Large payloads can be gzip-compressed; compressed values carry a header so
decoding never needs to know how the value was written.
"""

import base64
import gzip

from ...constants import COMPRESSED_PAYLOAD_HEADER, DEFAULT_MIN_LENGTH_COMPRESS


class PayloadCodec:
    """Base64 codec with optional gzip compression above a size threshold."""

    header = COMPRESSED_PAYLOAD_HEADER

    def __init__(
        self, compress: bool = False, min_length_compress: int = DEFAULT_MIN_LENGTH_COMPRESS
    ):
        self.compress = compress
        self.min_length_compress = max(0, int(min_length_compress))

    def should_compress(self, raw: bytes) -> bool:
        return self.compress and len(raw) >= self.min_length_compress

    def encode(self, raw: bytes) -> str:
        """Encode bytes for storage."""
        if self.should_compress(raw):
            compressed = gzip.compress(raw)
            return self.header + base64.b64encode(compressed).decode("ascii")

        return base64.b64encode(raw).decode("ascii")

    def decode(self, stored: str) -> bytes:
        """Decode a stored value back to the original bytes."""
        if stored.startswith(self.header):
            compressed = base64.b64decode(stored[len(self.header) :])
            return gzip.decompress(compressed)

        return base64.b64decode(stored)

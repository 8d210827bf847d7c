"""
Document Store Exceptions

Exceptions for store transport failures.
Store errors are never swallowed: they are wrapped with context and
re-raised to the caller of the operation that hit them.
"""

from typing import Optional, Any, Dict


class StoreException(Exception):
    """Base exception for document store errors.

    All store operations should raise this or its subclasses,
    chained to the original client error.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class StoreConnectionException(StoreException):
    """Raised when the store connection fails or is lost."""

    def __init__(
        self,
        message: str = "Document store connection failed",
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="STORE_CONNECTION_ERROR", details=details
        )


class StoreOperationTimeoutException(StoreException):
    """Raised when a store operation times out."""

    def __init__(self, operation: str, key: Optional[str] = None):
        details = {"operation": operation}
        if key is not None:
            details["key"] = key

        super().__init__(
            message=f"Document store operation '{operation}' timed out",
            error_code="STORE_TIMEOUT",
            details=details,
        )


class StoreReplicationException(StoreException):
    """Raised when fewer replicas than required acknowledged a write."""

    def __init__(self, key: str, required: int, acknowledged: int):
        super().__init__(
            message=(
                f"Write of '{key}' acknowledged by {acknowledged} of {required} replicas"
            ),
            error_code="STORE_REPLICATION_ERROR",
            details={"key": key, "required": required, "acknowledged": acknowledged},
        )


class StoreConfigurationException(StoreException):
    """Raised when the store client cannot be configured."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message=message, error_code="STORE_CONFIG_ERROR", details=details
        )

"""
Cache Domain Exceptions

Error taxonomy for cache usage and configuration problems.
Store transport failures live in the infrastructure layer.
"""

from typing import Optional, Any, Dict


class CacheException(Exception):
    """Base exception for cache errors.

    Carries a machine readable error code and structured details
    alongside the human readable message.
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


class NullArgumentError(CacheException, TypeError):
    """Raised when a required key, value or options argument is missing."""

    def __init__(self, argument: str):
        super().__init__(
            message=f"{argument} cannot be None.",
            error_code="NULL_ARGUMENT",
            details={"argument": argument},
        )
        self.argument = argument


class InvalidConfigurationError(CacheException, ValueError):
    """Raised at construction when cache settings are unusable."""

    def __init__(self, message: str, setting: Optional[str] = None, value: Any = None):
        details = {}
        if setting:
            details["setting"] = setting
        if value is not None:
            details["value"] = str(value)

        super().__init__(
            message=message, error_code="INVALID_CONFIGURATION", details=details
        )


class InvalidTemporalRangeError(CacheException, ValueError):
    """Raised when an expiration is not in the future or not positive."""

    def __init__(self, message: str, value: Any = None):
        details = {"value": str(value)} if value is not None else {}
        super().__init__(
            message=message, error_code="INVALID_TEMPORAL_RANGE", details=details
        )


class MissingExpirationPolicyError(CacheException, ValueError):
    """Raised when an entry has neither sliding nor absolute expiration."""

    def __init__(
        self, message: str = "Either absolute or sliding expiration needs to be provided."
    ):
        super().__init__(message=message, error_code="MISSING_EXPIRATION_POLICY")


class OperationCancelledError(CacheException):
    """Raised when a cancellation signal is observed before touching the store."""

    def __init__(self, operation: str, key: Optional[str] = None):
        details = {"operation": operation}
        if key is not None:
            details["key"] = key

        super().__init__(
            message=f"Cache operation '{operation}' was cancelled",
            error_code="OPERATION_CANCELLED",
            details=details,
        )

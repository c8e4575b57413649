"""
Cache Infrastructure Exceptions

Exceptions raised inside the cache store. They never leave the store:
every public CacheStore operation converts them into a miss or a no-op.
"""

from typing import Any, Dict, Optional


class CacheException(Exception):
    """Base exception for cache-related errors."""

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


class CacheUnavailableException(CacheException):
    """Raised when the cache is disabled or disconnected at call time."""

    def __init__(
        self,
        message: str = "Cache unavailable",
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="CACHE_UNAVAILABLE", details=details
        )
        if original_error:
            self.__cause__ = original_error


class CacheSerializationException(CacheException):
    """Raised when a value cannot be encoded to or decoded from JSON."""

    def __init__(
        self,
        key: str,
        operation: str,
        original_error: Optional[Exception] = None,
    ):
        details = {"key": key, "operation": operation}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message=f"Cannot {operation} cached value for key '{key}'",
            error_code="CACHE_SERIALIZATION_ERROR",
            details=details,
        )
        if original_error:
            self.__cause__ = original_error

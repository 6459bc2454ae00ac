"""
Cache Store Exceptions

Domain-specific exceptions for the Redis-backed cache store.
These are raised inside the store adapter and caught there; only
CacheUnavailableHTTPException ever leaves the cache layer, and only on
the administrative API surface.
"""

from typing import Optional, Any, Dict
from fastapi import HTTPException


class CacheStoreException(Exception):
    """Base exception for cache store errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or "CACHE_STORE_ERROR"
        self.details = details or {}
        super().__init__(self.message)


class CacheStoreUnavailableException(CacheStoreException):
    """Raised when the cache store has no live connection."""

    def __init__(
        self,
        message: str = "Cache service unavailable",
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(
            message=message, error_code="CACHE_UNAVAILABLE", details=details
        )
        if original_error:
            self.__cause__ = original_error


class CacheStoreTimeoutException(CacheStoreException):
    """Raised when a single cache store operation exceeds its time budget."""

    def __init__(
        self, operation: str, timeout_seconds: float, key: Optional[str] = None
    ):
        details = {"operation": operation, "timeout_seconds": timeout_seconds}
        if key:
            details["key"] = key

        super().__init__(
            message=f"Cache operation '{operation}' timed out after {timeout_seconds}s",
            error_code="CACHE_TIMEOUT",
            details=details,
        )


class CacheCircuitOpenException(CacheStoreUnavailableException):
    """Raised when the store circuit breaker is open."""

    def __init__(self, message: str = "Cache circuit breaker is open"):
        super().__init__(message=message)
        self.details["circuit_state"] = "open"


class CacheUnavailableHTTPException(HTTPException):
    """HTTP 503 for administrative cache routes when the store is down."""

    def __init__(self, message: str = "Cache service unavailable"):
        error = CacheStoreUnavailableException(message)
        self.store_exception = error
        super().__init__(
            status_code=503,
            detail={
                "success": False,
                "error": error.error_code,
                "message": error.message,
            },
        )

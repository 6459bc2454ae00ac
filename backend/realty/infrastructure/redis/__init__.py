"""
Redis Infrastructure Module

Liveness-aware Redis store adapter with circuit breaker protection.

This module provides:
- RedisStore: get/set-with-expiry/delete/pattern-delete that never raise
- StoreCircuitBreaker: transport failure tracking
- Cache store exceptions, including the 503 used by admin routes
"""

from .store import RedisStore, RedisStoreConfig
from .circuit_breaker import (
    StoreCircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
    CircuitBreakerMetrics,
)
from .exceptions import (
    CacheStoreException,
    CacheStoreUnavailableException,
    CacheStoreTimeoutException,
    CacheCircuitOpenException,
    CacheUnavailableHTTPException,
)

__all__ = [
    # Store
    "RedisStore",
    "RedisStoreConfig",
    # Circuit breaker
    "StoreCircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "CircuitBreakerMetrics",
    # Exceptions
    "CacheStoreException",
    "CacheStoreUnavailableException",
    "CacheStoreTimeoutException",
    "CacheCircuitOpenException",
    "CacheUnavailableHTTPException",
]

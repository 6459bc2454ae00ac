"""
Redis Store Adapter

Liveness-aware wrapper around a single redis.asyncio client and its
connection pool. Every public operation returns a result instead of raising:
reads give a CacheLookup, writes and deletes give a bool.

The store is constructed explicitly by the application lifespan and handed to
the cache service; there is no module-level instance.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from redis.asyncio import Redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    RedisError,
    TimeoutError as RedisTimeoutError,
)
from redis.retry import Retry

from ...core.config import Settings
from ...domain.cache.value_objects import CacheLookup
from .circuit_breaker import CircuitBreakerConfig, CircuitState, StoreCircuitBreaker
from .exceptions import (
    CacheCircuitOpenException,
    CacheStoreException,
    CacheStoreTimeoutException,
    CacheStoreUnavailableException,
)

logger = logging.getLogger(__name__)


@dataclass
class RedisStoreConfig:
    """Configuration for the Redis store adapter."""

    url: str = "redis://localhost:6379/0"
    max_connections: int = 10
    connection_timeout: float = 2.0
    operation_timeout: float = 1.0
    max_retries: int = 3
    health_check_interval: int = 30

    # SCAN page size and DEL batch size for pattern deletes
    scan_count: int = 500
    delete_batch_size: int = 500

    # Backoff for redis-py's built-in retry
    backoff_base: float = 0.05
    backoff_cap: float = 0.5

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisStoreConfig":
        return cls(
            url=settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            connection_timeout=settings.REDIS_CONNECTION_TIMEOUT,
            operation_timeout=settings.REDIS_OPERATION_TIMEOUT,
            max_retries=settings.REDIS_MAX_RETRIES,
            health_check_interval=settings.REDIS_HEALTH_CHECK_INTERVAL,
        )


class RedisStore:
    """
    Volatile key-value store adapter.

    Transport failures feed a StoreCircuitBreaker. While the circuit is open
    calls return immediately without touching the network; after the recovery
    timeout one call is let through as a probe and, if it succeeds, the store
    becomes available again.
    """

    def __init__(
        self,
        config: Optional[RedisStoreConfig] = None,
        client: Optional[Redis] = None,
        circuit_breaker: Optional[StoreCircuitBreaker] = None,
    ):
        self.config = config or RedisStoreConfig()
        self._client: Optional[Redis] = client
        self._owns_client = client is None
        self._circuit_breaker = circuit_breaker or StoreCircuitBreaker()
        self._handshake_ok = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisStore":
        """Build a store and its circuit breaker from application settings."""
        breaker = StoreCircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
                recovery_timeout=settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT,
            )
        )
        return cls(RedisStoreConfig.from_settings(settings), circuit_breaker=breaker)

    @property
    def circuit_breaker(self) -> StoreCircuitBreaker:
        return self._circuit_breaker

    def _build_client(self) -> Redis:
        # Connections are created lazily by the pool on first command
        retry = Retry(
            ExponentialBackoff(cap=self.config.backoff_cap, base=self.config.backoff_base),
            retries=self.config.max_retries,
        )
        return Redis.from_url(
            self.config.url,
            decode_responses=False,
            max_connections=self.config.max_connections,
            socket_connect_timeout=self.config.connection_timeout,
            socket_timeout=self.config.operation_timeout,
            retry=retry,
            retry_on_error=[RedisConnectionError, RedisTimeoutError],
            health_check_interval=self.config.health_check_interval,
        )

    async def open(self) -> None:
        """
        Create the client and perform the initial handshake.

        Never raises. A failed handshake leaves the store unavailable with its
        circuit open, so later calls probe the server after the recovery timeout.
        """
        if self._client is None:
            self._client = self._build_client()

        try:
            await asyncio.wait_for(
                self._client.ping(), timeout=self.config.connection_timeout
            )
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            self._handshake_ok = False
            await self._circuit_breaker.trip(type(e).__name__)
            logger.warning(
                "Cache store handshake failed, continuing without cache",
                extra={"url": self._safe_url(), "error": str(e)},
            )
            return

        self._handshake_ok = True
        await self._circuit_breaker.reset()
        logger.info("Cache store connected", extra={"url": self._safe_url()})

    async def close(self) -> None:
        """Disconnect the connection pool."""
        if self._client is None:
            return

        client = self._client
        self._client = None
        self._handshake_ok = False
        if not self._owns_client:
            return

        try:
            await client.aclose()
        except (RedisError, OSError) as e:
            logger.warning("Error closing cache store", extra={"error": str(e)})
        else:
            logger.info("Cache store closed")

    async def __aenter__(self) -> "RedisStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def is_available(self) -> bool:
        """True when a client exists and the transport has not reported a loss."""
        return (
            self._client is not None
            and self._handshake_ok
            and self._circuit_breaker.state == CircuitState.CLOSED
        )

    async def get(self, key: str) -> CacheLookup:
        """Fetch raw bytes for key."""
        try:
            data = await self._run("get", lambda client: client.get(key), key=key)
        except CacheStoreException as e:
            self._log_failure("get", e, key=key)
            return CacheLookup.unavailable()

        if data is None:
            return CacheLookup.miss()
        return CacheLookup.hit(data)

    async def set_with_expiry(self, key: str, data: bytes, ttl_seconds: int) -> bool:
        """Atomically write key with a TTL (SET key value EX ttl)."""
        try:
            result = await self._run(
                "set", lambda client: client.set(key, data, ex=ttl_seconds), key=key
            )
        except CacheStoreException as e:
            self._log_failure("set", e, key=key)
            return False
        return bool(result)

    async def delete(self, key: str) -> bool:
        """Delete a single key. True when the store accepted the command."""
        try:
            await self._run("delete", lambda client: client.delete(key), key=key)
        except CacheStoreException as e:
            self._log_failure("delete", e, key=key)
            return False
        return True

    async def delete_pattern(self, pattern: str) -> Optional[int]:
        """
        Delete every key matching a glob pattern.

        The pattern is first resolved with SCAN into a snapshot of keys, which
        is then deleted in batches. Keys written concurrently may survive. If a
        batch fails the remaining keys are left for TTL expiry.

        Returns:
            Number of keys deleted, or None when the pattern could not be resolved
        """
        try:
            keys = await self._scan(pattern)
        except CacheStoreException as e:
            self._log_failure("scan", e, key=pattern)
            return None

        deleted = 0
        batch_size = self.config.delete_batch_size
        for start in range(0, len(keys), batch_size):
            batch = keys[start : start + batch_size]
            try:
                deleted += await self._run(
                    "delete_pattern",
                    lambda client, batch=batch: client.delete(*batch),
                    key=pattern,
                )
            except CacheStoreException as e:
                self._log_failure("delete_pattern", e, key=pattern)
                break

        if deleted:
            logger.debug(
                "Deleted keys by pattern",
                extra={"pattern": pattern, "matched": len(keys), "deleted": deleted},
            )
        return deleted

    async def _scan(self, pattern: str) -> List[bytes]:
        keys: List[bytes] = []
        seen = set()
        cursor = 0
        while True:
            cursor, page = await self._run(
                "scan",
                lambda client, cursor=cursor: client.scan(
                    cursor, match=pattern, count=self.config.scan_count
                ),
                key=pattern,
            )
            for key in page:
                # SCAN may return the same key more than once
                if key not in seen:
                    seen.add(key)
                    keys.append(key)
            if not cursor:
                return keys

    async def ping(self) -> bool:
        """Round-trip liveness probe."""
        try:
            return bool(await self._run("ping", lambda client: client.ping()))
        except CacheStoreException as e:
            self._log_failure("ping", e)
            return False

    async def info(self, section: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Server INFO, optionally for a single section. None when unreachable."""
        try:
            if section:
                return await self._run("info", lambda client: client.info(section))
            return await self._run("info", lambda client: client.info())
        except CacheStoreException as e:
            self._log_failure("info", e)
            return None

    async def db_size(self) -> Optional[int]:
        """Number of keys in the selected database."""
        try:
            return await self._run("dbsize", lambda client: client.dbsize())
        except CacheStoreException as e:
            self._log_failure("dbsize", e)
            return None

    async def flush(self) -> bool:
        """Remove every key from the selected database."""
        try:
            await self._run("flushdb", lambda client: client.flushdb())
        except CacheStoreException as e:
            self._log_failure("flushdb", e)
            return False
        logger.info("Cache store flushed")
        return True

    async def _run(
        self,
        operation: str,
        command: Callable[[Redis], Awaitable[Any]],
        key: Optional[str] = None,
    ) -> Any:
        """
        Execute one command through the circuit breaker with a time bound.

        Raises:
            CacheStoreUnavailableException: No client, open circuit or lost connection
            CacheStoreTimeoutException: Command exceeded the operation timeout
            CacheStoreException: Any other Redis error
        """
        client = self._client
        if client is None:
            raise CacheStoreUnavailableException("Cache store is not open")

        async def bounded() -> Any:
            return await asyncio.wait_for(
                command(client), timeout=self.config.operation_timeout
            )

        start_time = time.perf_counter()
        try:
            result = await self._circuit_breaker.call(bounded)
        except CacheCircuitOpenException:
            raise
        except (asyncio.TimeoutError, RedisTimeoutError) as e:
            raise CacheStoreTimeoutException(
                operation, self.config.operation_timeout, key
            ) from e
        except (RedisConnectionError, ConnectionRefusedError) as e:
            raise CacheStoreUnavailableException(original_error=e)
        except RedisError as e:
            raise CacheStoreException(
                message=f"Cache operation '{operation}' failed: {e}",
                details={"operation": operation, "key": key},
            ) from e

        if not self._handshake_ok:
            # A probe after a failed handshake counts as a fresh handshake
            self._handshake_ok = True
            logger.info("Cache store connection recovered")

        logger.debug(
            "Cache store operation",
            extra={
                "operation": operation,
                "key": key,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )
        return result

    def _log_failure(
        self, operation: str, error: CacheStoreException, key: Optional[str] = None
    ) -> None:
        if isinstance(error, CacheCircuitOpenException):
            logger.debug(
                "Cache store circuit open, skipping operation",
                extra={"operation": operation, "key": key},
            )
            return

        logger.warning(
            f"Cache store operation failed: {operation}",
            extra={
                "operation": operation,
                "key": key,
                "error_code": error.error_code,
                "error": error.message,
            },
        )

    def _safe_url(self) -> str:
        # Strip credentials before logging
        url = self.config.url
        if "@" in url:
            scheme, _, rest = url.partition("://")
            return f"{scheme}://***@{rest.split('@', 1)[1]}"
        return url

    def get_status(self) -> Dict[str, Any]:
        """Adapter status for the administrative surface."""
        return {
            "available": self.is_available(),
            "handshake_ok": self._handshake_ok,
            "circuit_breaker": self._circuit_breaker.get_status(),
        }

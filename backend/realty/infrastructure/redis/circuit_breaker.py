"""
Cache Store Circuit Breaker

Tracks transport-level failures of the cache store so that a lost or
partitioned Redis degrades to "unavailable" instead of stalling requests.
Once open, calls are rejected locally until the recovery timeout has
elapsed; the next call is then let through as the single probe and
decides whether the circuit closes again. Calls arriving while that probe
is in flight are rejected like calls on an open circuit.
"""

import time
import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar
from dataclasses import asdict, dataclass, field

from redis.exceptions import (
    AuthenticationError,
    BusyLoadingError,
    ConnectionError as RedisConnectionError,
)

from .exceptions import CacheCircuitOpenException

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that mean the transport itself is gone; timeouts and command errors
# are not in this list and leave the circuit as it is
TRANSPORT_FAILURES = (
    RedisConnectionError,
    BusyLoadingError,
    AuthenticationError,
    ConnectionRefusedError,
)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 3
    recovery_timeout: float = 15.0
    failure_exceptions: tuple = field(default=TRANSPORT_FAILURES)


@dataclass
class CircuitBreakerMetrics:
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    circuit_opens: int = 0


class StoreCircuitBreaker:
    """Circuit breaker guarding every command the store sends to Redis."""

    def __init__(self, config: Optional[CircuitBreakerConfig] = None):
        self.config = config or CircuitBreakerConfig()
        self.state = CircuitState.CLOSED
        self.consecutive_failures = 0
        self.opened_at: Optional[float] = None
        self.metrics = CircuitBreakerMetrics()
        self._lock = asyncio.Lock()

    def _recovery_due(self) -> bool:
        return (
            self.opened_at is None
            or time.monotonic() - self.opened_at >= self.config.recovery_timeout
        )

    def _open(self, reason: str) -> None:
        # Caller holds the lock
        if self.state != CircuitState.OPEN:
            self.metrics.circuit_opens += 1
            logger.warning(
                "Cache circuit opened",
                extra={"reason": reason, "previous_state": self.state.value},
            )
        self.state = CircuitState.OPEN
        self.opened_at = time.monotonic()
        self.consecutive_failures = 0

    def _close(self) -> None:
        if self.state != CircuitState.CLOSED:
            logger.info("Cache circuit closed")
        self.state = CircuitState.CLOSED
        self.opened_at = None
        self.consecutive_failures = 0

    async def call(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """
        Run one store command through the breaker.

        Raises:
            CacheCircuitOpenException: If the circuit is open and no probe is due,
                or another call is already probing
            Exception: Whatever the command raised
        """
        async with self._lock:
            probing = self.state != CircuitState.CLOSED
            if self.state == CircuitState.HALF_OPEN or (
                self.state == CircuitState.OPEN and not self._recovery_due()
            ):
                self.metrics.rejected_calls += 1
                raise CacheCircuitOpenException()
            if probing:
                self.state = CircuitState.HALF_OPEN

        try:
            result = await func(*args, **kwargs)
        except self.config.failure_exceptions as e:
            await self._record_failure(type(e).__name__)
            raise
        except BaseException:
            if probing:
                self._abandon_probe()
            raise

        async with self._lock:
            self.metrics.successful_calls += 1
            self._close()
        return result

    def _abandon_probe(self) -> None:
        """Inconclusive probe (timeout, command error, cancellation): the next call probes."""
        if self.state == CircuitState.HALF_OPEN:
            self.state = CircuitState.OPEN

    async def _record_failure(self, failure_type: str) -> None:
        async with self._lock:
            self.metrics.failed_calls += 1
            if self.state == CircuitState.HALF_OPEN:
                self._open(f"probe failed: {failure_type}")
                return

            self.consecutive_failures += 1
            if self.consecutive_failures >= self.config.failure_threshold:
                self._open(failure_type)

    async def trip(self, failure_type: str = "handshake") -> None:
        """Open the circuit immediately, e.g. when the initial handshake fails."""
        async with self._lock:
            self._open(failure_type)

    async def reset(self) -> None:
        async with self._lock:
            self._close()

    def get_status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "metrics": asdict(self.metrics),
        }

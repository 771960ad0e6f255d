"""
Circuit breaker pattern for ledger node resilience.
"""

import asyncio
import time
from enum import Enum
from typing import Callable, Optional

from sequestre.infrastructure.monitoring import metrics


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if service recovered


_STATE_GAUGE = {
    CircuitState.CLOSED: 0,
    CircuitState.OPEN: 1,
    CircuitState.HALF_OPEN: 2,
}


class CircuitBreakerError(Exception):
    """Raised when circuit is open."""


class CircuitBreaker:
    """
    Circuit breaker for external service calls.

    Tracks failures and automatically stops calling failing services.
    After a timeout, allows test requests to check if service recovered;
    ``success_threshold`` consecutive successes close the circuit again.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        success_threshold: int = 2,
        recovery_timeout: float = 60.0,
        expected_exception: type | tuple = Exception,
    ):
        """
        Initialize circuit breaker.

        Args:
            name: Breaker name (used as metrics label)
            failure_threshold: Number of failures before opening circuit
            success_threshold: Successes in half-open before closing
            recovery_timeout: Seconds to wait before trying again (half-open)
            expected_exception: Exception type(s) that count as failure
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.success_threshold = success_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception

        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: Optional[float] = None
        self._state = CircuitState.CLOSED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def _set_state(self, state: CircuitState) -> None:
        self._state = state
        metrics.circuit_breaker_state.labels(service=self.name).set(
            _STATE_GAUGE[state]
        )

    async def call(self, func: Callable, *args, **kwargs):
        """
        Execute function with circuit breaker protection.

        Args:
            func: Async function to call
            *args: Positional arguments for function
            **kwargs: Keyword arguments for function

        Returns:
            Function result

        Raises:
            CircuitBreakerError: If circuit is open
            Exception: Original exception from function
        """
        async with self._lock:
            if self._state == CircuitState.OPEN:
                if self._should_attempt_reset():
                    self._success_count = 0
                    self._set_state(CircuitState.HALF_OPEN)
                else:
                    raise CircuitBreakerError(
                        f"Circuit breaker '{self.name}' is OPEN. "
                        f"Failures: {self._failure_count}/{self.failure_threshold}. "
                        f"Retry after {self.recovery_timeout}s."
                    )

        try:
            result = await func(*args, **kwargs)
        except self.expected_exception:
            await self._on_failure()
            raise

        await self._on_success()
        return result

    async def _on_success(self) -> None:
        async with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    self._failure_count = 0
                    self._last_failure_time = None
                    self._set_state(CircuitState.CLOSED)
            else:
                self._failure_count = 0
                self._last_failure_time = None

    async def _on_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            self._last_failure_time = time.time()

            if (
                self._state == CircuitState.HALF_OPEN
                or self._failure_count >= self.failure_threshold
            ):
                self._set_state(CircuitState.OPEN)

    def _should_attempt_reset(self) -> bool:
        if self._last_failure_time is None:
            return False

        return (time.time() - self._last_failure_time) >= self.recovery_timeout

    async def reset(self) -> None:
        """Manually reset circuit breaker to CLOSED state."""
        async with self._lock:
            self._failure_count = 0
            self._success_count = 0
            self._last_failure_time = None
            self._set_state(CircuitState.CLOSED)

    def get_stats(self) -> dict:
        """
        Get circuit breaker statistics.

        Returns:
            Dict with state, failure_count, last_failure_time
        """
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "last_failure_time": self._last_failure_time,
            "recovery_timeout": self.recovery_timeout,
        }

"""
Unit tests for retry and circuit breaker.

Usage:
    pytest tests/unit/infrastructure/test_resilience.py
"""

from unittest.mock import AsyncMock, patch

import pytest

from sequestre.domain.exceptions import LedgerUnavailableError
from sequestre.infrastructure.resilience import (
    CircuitBreaker,
    CircuitBreakerError,
    CircuitState,
    Retry,
    RetryConfig,
    RetryError,
)


def _no_delay_config(**overrides) -> RetryConfig:
    config = RetryConfig(initial_delay=0.0, jitter=False)
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


class TestRetry:
    """Unit tests for Retry."""

    async def test_succeeds_after_transient_failures(self):
        """Test transient failures are retried until success."""
        func = AsyncMock(side_effect=[TimeoutError(), TimeoutError(), "ok"])
        retry = Retry(_no_delay_config(max_attempts=3))

        assert await retry.execute_async(func, 1, key="v") == "ok"
        assert func.await_count == 3
        func.assert_awaited_with(1, key="v")

    async def test_exhausted_attempts_raise_retry_error(self):
        """Test RetryError carries the last exception."""
        error = TimeoutError("slow node")
        func = AsyncMock(side_effect=error)
        retry = Retry(_no_delay_config(max_attempts=2))

        with pytest.raises(RetryError) as exc_info:
            await retry.execute_async(func)

        assert exc_info.value.attempts == 2
        assert exc_info.value.last_exception is error

    async def test_non_retryable_raised_unchanged(self):
        """Test exceptions outside retry_on are raised on first attempt."""
        func = AsyncMock(side_effect=ValueError("bad input"))
        retry = Retry(_no_delay_config(retry_on=(TimeoutError,)))

        with pytest.raises(ValueError):
            await retry.execute_async(func)

        assert func.await_count == 1

    async def test_retry_if_predicate(self):
        """Test retry_if filters retryable exceptions."""
        func = AsyncMock(
            side_effect=LedgerUnavailableError("sent", submitted=True)
        )
        retry = Retry(
            _no_delay_config(
                retry_on=(LedgerUnavailableError,),
                retry_if=lambda e: not e.submitted,
            )
        )

        with pytest.raises(LedgerUnavailableError):
            await retry.execute_async(func)

        assert func.await_count == 1

    @pytest.mark.parametrize(
        "attempt,expected",
        [(0, 1.0), (3, 8.0), (10, 30.0)],
    )
    def test_calculate_delay(self, attempt, expected):
        """Test exponential backoff without jitter, capped at max_delay."""
        retry = Retry(
            RetryConfig(
                initial_delay=1.0,
                max_delay=30.0,
                backoff_multiplier=2.0,
                jitter=False,
            )
        )

        assert retry._calculate_delay(attempt) == expected


class TestCircuitBreaker:
    """Unit tests for CircuitBreaker."""

    # ================================================================
    # Helper Methods
    # ================================================================

    def _breaker(self, **overrides) -> CircuitBreaker:
        params = {
            "name": "ledger_test",
            "failure_threshold": 2,
            "success_threshold": 1,
            "recovery_timeout": 60.0,
            "expected_exception": LedgerUnavailableError,
        }
        params.update(overrides)
        return CircuitBreaker(**params)

    async def _trip(self, breaker: CircuitBreaker) -> None:
        failing = AsyncMock(side_effect=LedgerUnavailableError("down"))
        for _ in range(breaker.failure_threshold):
            with pytest.raises(LedgerUnavailableError):
                await breaker.call(failing)

    # ================================================================
    # Test Methods
    # ================================================================

    async def test_opens_after_threshold(self):
        """Test consecutive failures open the circuit."""
        breaker = self._breaker()

        await self._trip(breaker)

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitBreakerError):
            await breaker.call(AsyncMock(return_value="ok"))

    async def test_unexpected_exceptions_not_counted(self):
        """Test exceptions outside expected_exception leave it closed."""
        breaker = self._breaker()
        failing = AsyncMock(side_effect=ValueError("revert"))

        for _ in range(3):
            with pytest.raises(ValueError):
                await breaker.call(failing)

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0

    async def test_success_resets_failures(self):
        """Test a success clears the failure count."""
        breaker = self._breaker(failure_threshold=3)
        failing = AsyncMock(side_effect=LedgerUnavailableError("down"))
        with pytest.raises(LedgerUnavailableError):
            await breaker.call(failing)

        await breaker.call(AsyncMock(return_value="ok"))

        assert breaker.failure_count == 0

    async def test_half_open_recovers(self):
        """Test a success after the recovery timeout closes the circuit."""
        breaker = self._breaker()
        await self._trip(breaker)

        with patch.object(breaker, "_should_attempt_reset", return_value=True):
            result = await breaker.call(AsyncMock(return_value="ok"))

        assert result == "ok"
        assert breaker.state == CircuitState.CLOSED

    async def test_half_open_failure_reopens(self):
        """Test a failure while half-open reopens the circuit."""
        breaker = self._breaker(failure_threshold=5)
        breaker._state = CircuitState.OPEN
        breaker._last_failure_time = 0.0

        with pytest.raises(LedgerUnavailableError):
            await breaker.call(AsyncMock(side_effect=LedgerUnavailableError("down")))

        assert breaker.state == CircuitState.OPEN

    async def test_reset_and_stats(self):
        """Test manual reset and stats reporting."""
        breaker = self._breaker()
        await self._trip(breaker)

        await breaker.reset()
        stats = breaker.get_stats()

        assert stats["name"] == "ledger_test"
        assert stats["state"] == "closed"
        assert stats["failure_count"] == 0

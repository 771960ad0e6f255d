"""
Retry pattern with exponential backoff and jitter.

Only idempotent ledger reads are retried. Transaction submission is never
retried here: a failure after sending has an unknown outcome and must be
resolved by re-querying the ledger.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    """Maximum number of attempts (including initial attempt)"""

    initial_delay: float = 1.0
    """Initial delay between retries in seconds"""

    max_delay: float = 60.0
    """Maximum delay between retries in seconds"""

    backoff_multiplier: float = 2.0
    """Delay grows by this factor per attempt"""

    jitter: bool = True

    jitter_factor: float = 0.1
    """Jitter factor (0.0-1.0). 0.1 means +/-10% randomness"""

    retry_on: tuple = (Exception,)
    """Exception types to retry on"""

    retry_if: Optional[Callable[[Exception], bool]] = None
    """Extra predicate an exception must satisfy to be retried"""


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(
        self,
        message: str,
        attempts: int,
        last_exception: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.attempts = attempts
        self.last_exception = last_exception


class Retry:
    """
    Async retry handler with exponential backoff.

    Example:
        retry = Retry(RetryConfig(max_attempts=5, retry_on=(TimeoutError,)))
        state = await retry.execute_async(contract.functions.get(1).call)
    """

    def __init__(self, config: Optional[RetryConfig] = None):
        self.config = config or RetryConfig()

    def _calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for current attempt.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = min(
            self.config.initial_delay * (self.config.backoff_multiplier**attempt),
            self.config.max_delay,
        )

        if self.config.jitter:
            jitter_range = delay * self.config.jitter_factor
            delay = max(0.0, delay + random.uniform(-jitter_range, jitter_range))

        return delay

    def _should_retry(self, exception: Exception) -> bool:
        if not isinstance(exception, self.config.retry_on):
            return False
        if self.config.retry_if is not None:
            return self.config.retry_if(exception)
        return True

    async def execute_async(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute async function with retry logic.

        Args:
            func: Async function to execute
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Returns:
            Function result

        Raises:
            RetryError: When all attempts exhausted
            Exception: Any non-retryable exception, unchanged
        """
        for attempt in range(self.config.max_attempts):
            try:
                result = await func(*args, **kwargs)
                if attempt > 0:
                    logger.info(
                        f"Operation succeeded on attempt "
                        f"{attempt + 1}/{self.config.max_attempts}"
                    )
                return result

            except Exception as e:
                if not self._should_retry(e):
                    raise

                if attempt >= self.config.max_attempts - 1:
                    raise RetryError(
                        f"All {self.config.max_attempts} attempts exhausted. "
                        f"Last error: {type(e).__name__}: {e}",
                        attempts=self.config.max_attempts,
                        last_exception=e,
                    ) from e

                delay = self._calculate_delay(attempt)
                logger.warning(
                    f"{type(e).__name__}: {e}. "
                    f"Attempt {attempt + 1}/{self.config.max_attempts}. "
                    f"Retrying in {delay:.2f}s..."
                )
                await asyncio.sleep(delay)

        raise RetryError(
            "Retry configured with no attempts",
            attempts=self.config.max_attempts,
        )


__all__ = [
    "Retry",
    "RetryConfig",
    "RetryError",
]

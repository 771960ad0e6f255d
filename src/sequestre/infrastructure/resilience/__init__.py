"""
Resilience patterns: retry, circuit breaker, idempotency.
"""

from sequestre.infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerError,
    CircuitState,
)
from sequestre.infrastructure.resilience.idempotency import (
    IdempotencyKey,
    IdempotencyStore,
    InMemoryIdempotencyStore,
)
from sequestre.infrastructure.resilience.retry import (
    Retry,
    RetryConfig,
    RetryError,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerError",
    "CircuitState",
    "IdempotencyKey",
    "IdempotencyStore",
    "InMemoryIdempotencyStore",
    "Retry",
    "RetryConfig",
    "RetryError",
]

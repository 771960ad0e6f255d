"""
Idempotency keys and stores for escrow creation.

The durable guarantee lives on the mirror rows (``idempotency_key`` column).
Stores here cache the creation result so replays skip the database too.
"""

import time
from typing import Any, Optional, Protocol


class IdempotencyStore(Protocol):
    """
    Protocol for idempotency key storage.

    Implementations can use Redis or any persistent store.
    """

    async def get_async(self, key: str) -> Optional[Any]:
        """
        Get cached result for idempotency key.

        Returns:
            Cached result or None if not found
        """
        ...

    async def set_async(self, key: str, value: Any, ttl: int = 86400) -> None:
        """
        Store result for idempotency key.

        Args:
            key: Idempotency key
            value: JSON-serializable result
            ttl: Time to live in seconds (default: 24 hours)
        """
        ...

    async def exists_async(self, key: str) -> bool:
        ...


class InMemoryIdempotencyStore:
    """
    In-memory idempotency store.

    Used in tests and single-process deployments without Redis.
    Data is lost on restart.
    """

    def __init__(self):
        self._store: dict[str, Any] = {}
        self._expiry: dict[str, float] = {}

    def _get(self, key: str) -> Optional[Any]:
        if key in self._expiry and time.time() > self._expiry[key]:
            del self._store[key]
            del self._expiry[key]
            return None
        return self._store.get(key)

    async def get_async(self, key: str) -> Optional[Any]:
        return self._get(key)

    async def set_async(self, key: str, value: Any, ttl: int = 86400) -> None:
        self._store[key] = value
        self._expiry[key] = time.time() + ttl

    async def exists_async(self, key: str) -> bool:
        return self._get(key) is not None


class IdempotencyKey:
    """Utility class for generating idempotency keys."""

    @staticmethod
    def scoped(operation: str, network: str, client_key: str) -> str:
        """Namespace a client-supplied key by operation and network."""
        return f"{operation}_{network}_{client_key}"


__all__ = [
    "IdempotencyStore",
    "InMemoryIdempotencyStore",
    "IdempotencyKey",
]

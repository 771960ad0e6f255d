"""
Redis-based idempotency store.

Implements the IdempotencyStore protocol on top of redis.asyncio.
"""

import json
from typing import Any, Optional

import redis.asyncio as aioredis

from sequestre.infrastructure.monitoring.logger import get_logger

logger = get_logger(__name__)


class RedisIdempotencyStore:
    """
    Redis implementation of idempotency store.

    Caches escrow creation results so a replayed request returns the first
    escrow instead of locking funds twice.
    """

    def __init__(
        self,
        redis_client: Optional[aioredis.Redis] = None,
        url: Optional[str] = None,
        db: int = 0,
        password: Optional[str] = None,
    ):
        """
        Initialize Redis idempotency store.

        Args:
            redis_client: Optional Redis client. If None, connects to ``url``
                on first use.
            url: Redis URL (e.g. redis://localhost:6379)
            db: Redis database number
            password: Optional Redis password
        """
        self.redis = redis_client
        self._url = url
        self._db = db
        self._password = password

    async def _ensure_connection(self) -> None:
        """Ensure Redis connection is established."""
        if self.redis is None:
            self.redis = aioredis.from_url(
                self._url or "redis://localhost:6379",
                db=self._db,
                password=self._password,
                decode_responses=False,
            )

    async def get_async(self, key: str) -> Optional[Any]:
        await self._ensure_connection()

        value = await self.redis.get(f"idempotency:{key}")
        if value:
            return json.loads(value)
        return None

    async def set_async(self, key: str, value: Any, ttl: int = 86400) -> None:
        await self._ensure_connection()

        serialized = json.dumps(value, default=str)
        await self.redis.setex(f"idempotency:{key}", ttl, serialized)

    async def exists_async(self, key: str) -> bool:
        await self._ensure_connection()

        exists = await self.redis.exists(f"idempotency:{key}")
        return bool(exists)

    async def health_check(self) -> bool:
        """Ping Redis."""
        await self._ensure_connection()
        try:
            return bool(await self.redis.ping())
        except aioredis.RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

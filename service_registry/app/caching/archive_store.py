"""
Key-value stores holding materialized package archives.

A store offers ``put(key, value, ttl_seconds) -> bool``,
``get(key) -> bytes | None`` and ``ping() -> bool``. Values are opaque
bytes; expiry is enforced by the store.
"""

import time
from typing import Callable, Dict, Optional, Tuple

import redis.asyncio as redis

from shared.logging import get_logger


class RedisArchiveStore:
    """Archive store backed by Redis ``SETEX``."""

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.logger = get_logger("registry.archive_store.redis")
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                decode_responses=False,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30,
            )
        return self._redis

    async def put(self, key: str, value: bytes, ttl_seconds: int) -> bool:
        try:
            client = await self._get_redis()
            await client.setex(key, ttl_seconds, value)
        except redis.RedisError as exc:
            self.logger.error("Archive store write failed", key=key, error=str(exc))
            return False

        self.logger.debug("Archive stored", key=key, ttl=ttl_seconds, size=len(value))
        return True

    async def get(self, key: str) -> Optional[bytes]:
        """Read a stored value.

        Unlike ``put`` and ``ping``, a Redis failure is re-raised: an
        unreachable store is not a cache miss, and the service renders it as
        an internal error.
        """
        try:
            client = await self._get_redis()
            return await client.get(key)
        except redis.RedisError as exc:
            self.logger.error("Archive store read failed", key=key, error=str(exc))
            raise

    async def ping(self) -> bool:
        try:
            client = await self._get_redis()
            return bool(await client.ping())
        except redis.RedisError as exc:
            self.logger.warning("Archive store ping failed", error=str(exc))
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("Archive store connection closed")


class InMemoryArchiveStore:
    """Process-local archive store for single-instance and local runs.

    Expired entries are dropped when read and swept on every write, so keys
    that are never read again do not outlive their TTL in memory.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.logger = get_logger("registry.archive_store.memory")
        self._entries: Dict[str, Tuple[float, bytes]] = {}

    async def put(self, key: str, value: bytes, ttl_seconds: int) -> bool:
        now = self.clock()
        self._sweep(now)
        self._entries[key] = (now + ttl_seconds, bytes(value))
        return True

    def _sweep(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            self.logger.debug("Expired archives evicted", count=len(expired))

    async def get(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries.clear()

"""
Redis Client
============

Async Redis client for packet persistence and distributed locking.

Version: 0.1.0
"""

import asyncio
import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import redis.asyncio as aioredis
from redis.asyncio import Redis

from shared.config import settings
from shared.logging import get_logger

logger = get_logger(__name__)

# Delete the lock only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class RedisClient:
    """
    Async Redis client wrapper.

    Provides connection management and health reporting.
    """

    _client: Redis | None = None  # type: ignore[type-arg]

    @classmethod
    def get_client(cls) -> Redis:  # type: ignore[type-arg]
        """Get or create the async client."""
        if cls._client is None:
            cls._client = aioredis.from_url(
                settings.redis.url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=50,
            )
            logger.info(
                "redis_client_created",
                host=settings.redis.host,
            )
        return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the client and release all connections."""
        if cls._client is not None:
            await cls._client.aclose()
            cls._client = None
            logger.info("redis_client_closed")

    @classmethod
    async def health_check(cls, client: Redis | None = None) -> dict[str, Any]:  # type: ignore[type-arg]
        """
        Check Redis health.

        Args:
            client: Client to check; defaults to the shared client

        Returns:
            dict with status and server info
        """
        try:
            start = time.perf_counter()
            if client is None:
                client = cls.get_client()
            pong = await client.ping()
            latency_ms = (time.perf_counter() - start) * 1000

            info = await client.info("server")

            return {
                "status": "healthy" if pong else "unhealthy",
                "latency_ms": round(latency_ms, 2),
                "redis_version": info.get("redis_version", "unknown"),
                "uptime_seconds": info.get("uptime_in_seconds", 0),
            }
        except Exception as e:
            logger.error("redis_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e),
            }


@asynccontextmanager
async def redis_lock(
    key: str,
    timeout_seconds: int = 10,
    blocking: bool = True,
    client: Redis | None = None,  # type: ignore[type-arg]
) -> AsyncGenerator[bool, None]:
    """
    Distributed lock using Redis.

    Usage:
        async with redis_lock("packet:7") as acquired:
            if acquired:
                # Do work with lock
                pass
    """
    client = client or RedisClient.get_client()
    lock_key = f"lock:{key}"
    lock_value = str(uuid.uuid4())

    acquired = await client.set(lock_key, lock_value, nx=True, ex=timeout_seconds)

    if not acquired and blocking:
        for _ in range(timeout_seconds * 10):
            await asyncio.sleep(0.1)
            acquired = await client.set(lock_key, lock_value, nx=True, ex=timeout_seconds)
            if acquired:
                break

    try:
        yield bool(acquired)
    finally:
        if acquired:
            await client.eval(_RELEASE_SCRIPT, 1, lock_key, lock_value)

"""
Database Module
===============

Async clients for packet data stores.

Clients:
- Redis (redis.asyncio)

Usage:
    from shared.database import RedisClient, redis_lock

    async with redis_lock("packet:7") as acquired:
        ...
"""

from shared.database.redis import (
    RedisClient,
    redis_lock,
)


__all__ = [
    "redis_lock",
    "RedisClient",
]

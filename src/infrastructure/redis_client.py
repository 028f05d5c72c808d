"""Redis async connection pool used for notification events."""

import redis.asyncio as aioredis

from src.config import settings

# Publishing is best effort; a dead Redis must not stall a request.
_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url,
    decode_responses=True,
    socket_connect_timeout=1,
    socket_timeout=1,
)


async def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    return aioredis.Redis(connection_pool=_pool)


async def close_redis() -> None:
    await _pool.disconnect()

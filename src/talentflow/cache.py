"""Redis connection shared by the rate limiter and the health check.

Learn: One connection pool per process, opened in the app lifespan and
closed on shutdown. Redis is optional: if it was never initialized,
get_redis() raises and callers degrade (no rate limiting, health shows
'degraded') instead of failing requests.
"""

from typing import Optional

import redis.asyncio as aioredis

from talentflow.config import settings

_redis: Optional[aioredis.Redis] = None


async def init_redis(url: Optional[str] = None) -> aioredis.Redis:
    """Open the pool and verify it with a PING."""
    global _redis
    client = aioredis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await client.ping()
    _redis = client
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis

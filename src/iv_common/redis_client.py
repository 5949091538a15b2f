"""Shared Redis connection, used only to mirror realtime events.

Balances, positions and prices never live in Redis; PostgreSQL is the only
source of truth.
"""

import logging

import redis.asyncio as aioredis

from config.settings import settings

logger = logging.getLogger(__name__)

_redis: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    global _redis  # noqa: PLW0603
    if _redis is None:
        _redis = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            health_check_interval=30,
        )
    return _redis


async def ping_redis() -> None:
    """Fail fast at startup when event mirroring is on but Redis is down."""
    await (await get_redis()).ping()
    logger.info("Connected to Redis at %s", settings.REDIS_URL.rsplit("@", 1)[-1])


async def close_redis() -> None:
    global _redis  # noqa: PLW0603
    if _redis is not None:
        await _redis.aclose()
        _redis = None

"""Shared Redis connection pool backing the presence store."""

import logging
from typing import Optional

from redis.asyncio import ConnectionPool, Redis

from discovery.core.config import settings

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None


def get_redis(url: Optional[str] = None) -> Redis:
    """Client on the process-wide pool, created on first use."""
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_url(url or settings.redis_url, decode_responses=True)
        logger.info(f"Opened Redis pool for presence at {url or settings.redis_url}")
    return Redis(connection_pool=_pool)


async def close_redis_pool() -> None:
    global _pool
    if _pool is None:
        return
    pool, _pool = _pool, None
    await pool.aclose()
    logger.info("Closed Redis presence pool")

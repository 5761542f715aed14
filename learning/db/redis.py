"""Redis connection management.

Mirrors engine.py: with REDIS_URL set we hold one shared async
connection pool; without it redis_pool is None and the event bus falls
back to its in-memory implementation (local dev, tests).

Redis carries the order events between the order service and the
learning worker (see learning.services.event_bus).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from learning.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Verify Redis on startup and close the pool on shutdown."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured, event bus runs in memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        # The HTTP read path does not need Redis; keep serving.
        logger.exception("Redis connection failed on startup")

    try:
        yield
    finally:
        await redis_pool.aclose()
        logger.info("Redis connection pool closed")

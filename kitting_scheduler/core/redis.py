"""Redis connection backing the schedule event channel."""

import logging

import redis.asyncio as aioredis

from kitting_scheduler.core.config import settings

logger = logging.getLogger(__name__)


async def init_redis(app_state: object, url: str = settings.REDIS_URL) -> aioredis.Redis:
    """Connect, ping and store the client on app.state.

    Raises ``RedisError`` / ``OSError`` when the server is unreachable; the
    caller decides whether events fall back to in-process delivery.
    """
    client = aioredis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=settings.REDIS_CONNECT_TIMEOUT,
    )
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    app_state.redis = client  # type: ignore[attr-defined]
    logger.debug("Redis client connected to %s", url)
    return client


async def close_redis(app_state: object) -> None:
    """Close the Redis connection stored on app.state, if any."""
    client: aioredis.Redis | None = getattr(app_state, "redis", None)
    if client is not None:
        await client.aclose()
        app_state.redis = None  # type: ignore[attr-defined]

"""
Redis client used by the notification sink.

Redis is optional: when disabled or unreachable every caller gets None and
falls back to its non-Redis behaviour. The database stays authoritative.
"""

from typing import Optional

import redis.asyncio as redis

from venuebook.core.config import get_settings
from venuebook.core.logging import get_logger
from venuebook.core.metrics import redis_connection_errors

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create the shared connection. Returns None if Redis is disabled or down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await client.ping()
            _redis_client = client
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            redis_connection_errors.inc()
            logger.error("redis_connection_failed", error=str(e))
            return None

    return _redis_client


async def close_redis() -> None:
    """Close the connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


async def get_redis_status() -> dict:
    """Connection status for the health endpoint."""
    if not settings.REDIS_ENABLED:
        return {"status": "disabled"}
    client = await get_redis()
    if client is None:
        return {"status": "unavailable"}
    try:
        await client.ping()
        return {"status": "connected"}
    except Exception as e:
        return {"status": "error", "error": str(e)}

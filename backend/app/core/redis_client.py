"""
Redis client initialization and connection management.

Redis holds the token revocation keys.
"""

import logging
import redis.asyncio as redis
from backend.app.core.config import settings

logger = logging.getLogger("reception.redis")

# Lazily connects on first command
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get the current Redis client instance.

    Looked up at call time so tests can swap the module-level client.
    """
    return redis_client


async def ping_redis() -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return await redis_client.ping()
    except Exception as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False


async def close_redis() -> None:
    """Close the connection pool on shutdown."""
    await redis_client.aclose()

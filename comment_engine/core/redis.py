# ruff: noqa: PLW0603
"""Redis connection management.

Redis is optional: the comment store uses it for per-author rate limiting and
duplicate-post detection and skips both when no client is available.
"""

import redis.asyncio as redis

from comment_engine.config import get_settings
from comment_engine.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis | None:
    """Initialize the Redis client, or return None when Redis is disabled."""
    global _redis_client

    settings = get_settings()
    if not settings.redis_configured:
        logger.info("redis_disabled")
        return None

    _redis_client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        decode_responses=True,
    )

    try:
        await _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url)
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        raise

    return _redis_client


async def shutdown_redis() -> None:
    """Close the Redis client."""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        logger.info("redis_disconnected")
        _redis_client = None


def get_redis() -> redis.Redis | None:
    """Get the Redis client instance."""
    return _redis_client


def rate_limit_keys(author_id: str) -> tuple[str, str]:
    """Per-minute and per-hour counter keys for an author."""
    return (f"comments:rate:{author_id}:minute", f"comments:rate:{author_id}:hour")


def recent_hashes_key(author_id: str) -> str:
    """List of recent content hashes for duplicate detection."""
    return f"comments:recent:{author_id}"

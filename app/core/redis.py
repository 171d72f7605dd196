"""Redis client for server-side session storage."""
import logging
import redis.asyncio as redis

logger = logging.getLogger(__name__)


def create_redis(redis_url: str) -> redis.Redis:
    """Create the process-wide Redis client (connections are pooled lazily)."""
    logger.info("Creating Redis client for session storage")
    return redis.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50
    )


async def close_redis(client: redis.Redis | None) -> None:
    """Close Redis connection pool."""
    if client is not None:
        await client.aclose()
        logger.info("Redis client closed")

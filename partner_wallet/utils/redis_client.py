"""Redis client for balance locks and balance events."""

from redis.asyncio import ConnectionPool, Redis

from partner_wallet.config import get_settings
from partner_wallet.logging_config import get_logger

logger = get_logger(__name__)

redis_pool: ConnectionPool | None = None
redis_client: Redis | None = None


async def init_redis() -> Redis | None:
    """Initialize the Redis connection pool.

    Returns None when no ``redis_url`` is configured.
    """
    global redis_pool, redis_client

    settings = get_settings()
    if not settings.redis_url:
        logger.info("redis_disabled")
        return None

    redis_pool = ConnectionPool.from_url(
        settings.redis_url,
        socket_timeout=settings.redis_socket_timeout,
        retry_on_timeout=True,
        decode_responses=True,
    )
    redis_client = Redis(connection_pool=redis_pool)

    await redis_client.ping()
    logger.info("redis_connected")
    return redis_client


async def close_redis() -> None:
    """Close Redis connection and pool."""
    global redis_pool, redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
    if redis_pool:
        await redis_pool.disconnect()
        redis_pool = None


def get_redis() -> Redis | None:
    """Dependency returning the shared Redis client, or None if disabled."""
    return redis_client

"""Factory for creating the session store selected by configuration."""
from redis.asyncio import Redis

from intake_agent.config.settings import Settings, get_settings
from intake_agent.core.session_store_base import SessionStoreBase
from intake_agent.core.memory_session_store import InMemorySessionStore
from intake_agent.core.redis_session_store import RedisSessionStore
from intake_agent.utils.logger import get_logger

logger = get_logger(__name__)


async def create_session_store(settings: Settings = None) -> SessionStoreBase:
    """Create a session store based on configuration.

    Returns:
        RedisSessionStore when ``use_redis`` is set and Redis answers a ping,
        InMemorySessionStore otherwise.
    """
    settings = settings or get_settings()
    timeout = settings.session_idle_timeout_seconds

    if not settings.use_redis:
        logger.info("Initializing in-memory session store")
        return InMemorySessionStore(idle_timeout_seconds=timeout)

    logger.info("Initializing Redis-backed session store")
    try:
        if settings.redis_url:
            redis_client = Redis.from_url(settings.redis_url, decode_responses=False)
        else:
            redis_client = Redis(
                host=settings.redis_host,
                port=settings.redis_port,
                db=settings.redis_db,
                password=settings.get_redis_password(),
                decode_responses=False
            )

        await redis_client.ping()
        logger.info(
            "Redis connection established",
            extra={"host": settings.redis_host, "port": settings.redis_port}
        )
        return RedisSessionStore(redis_client, idle_timeout_seconds=timeout)

    except Exception as e:
        logger.error(
            f"Failed to connect to Redis: {e}. Falling back to in-memory session store.",
            exc_info=True
        )
        return InMemorySessionStore(idle_timeout_seconds=timeout)

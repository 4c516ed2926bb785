"""Redis-backed implementation of the conversation session store."""
from typing import Optional
from redis.asyncio import Redis
from redis.exceptions import RedisError

from intake_agent.core.models import ConversationSession
from intake_agent.core.session_store_base import SessionStoreBase
from intake_agent.utils.logger import get_logger
from intake_agent.utils.metrics import sessions_created, sessions_evicted

logger = get_logger(__name__)


class RedisSessionStore(SessionStoreBase):
    """Redis-backed session store.

    Provides:
    - Sessions that survive an app restart
    - Horizontal scaling (multiple instances share sessions)
    - Idle expiry through key TTLs, refreshed on every save

    Sessions are stored as JSON under ``intake:session:{call_sid}``.
    """

    def __init__(
        self,
        redis_client: Redis,
        key_prefix: str = "intake:session",
        idle_timeout_seconds: int = 1800
    ):
        """Initialize Redis session store.

        Args:
            redis_client: Async Redis client instance
            key_prefix: Prefix for Redis keys
            idle_timeout_seconds: TTL applied on create and every save
        """
        super().__init__(idle_timeout_seconds)
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _get_key(self, call_sid: str) -> str:
        return f"{self.key_prefix}:{call_sid}"

    async def get_or_create(self, call_sid: str) -> ConversationSession:
        """Create the session with SET NX so racing first touches agree on one value."""
        key = self._get_key(call_sid)
        try:
            fresh = ConversationSession(call_sid=call_sid)
            created = await self.redis.set(
                key,
                fresh.model_dump_json(),
                nx=True,
                ex=self.idle_timeout_seconds,
            )
            if created:
                sessions_created.inc()
                logger.info(
                    "Created conversation session in Redis",
                    extra={"call_sid": call_sid, "ttl_seconds": self.idle_timeout_seconds}
                )
                return fresh

            session_json = await self.redis.get(key)
            if session_json:
                return ConversationSession.model_validate_json(session_json)

            # Expired between SET NX and GET; the next write recreates it
            return fresh

        except RedisError as e:
            logger.error(f"Redis error creating session for {call_sid}: {e}", exc_info=True)
            raise

    async def get(self, call_sid: str) -> Optional[ConversationSession]:
        try:
            session_json = await self.redis.get(self._get_key(call_sid))
            if not session_json:
                return None
            return ConversationSession.model_validate_json(session_json)
        except RedisError as e:
            logger.error(f"Redis error getting session for {call_sid}: {e}", exc_info=True)
            return None

    async def save(self, session: ConversationSession) -> None:
        session.touch()
        try:
            await self.redis.setex(
                self._get_key(session.call_sid),
                self.idle_timeout_seconds,
                session.model_dump_json()
            )
        except RedisError as e:
            logger.error(f"Redis error saving session for {session.call_sid}: {e}", exc_info=True)
            raise

    async def evict(self, call_sid: str) -> bool:
        try:
            removed = await self.redis.delete(self._get_key(call_sid))
        except RedisError as e:
            logger.error(f"Redis error evicting session for {call_sid}: {e}", exc_info=True)
            return False
        if removed:
            sessions_evicted.labels(reason="call_ended").inc()
            logger.info(f"Evicted session in Redis for {call_sid}")
        return bool(removed)

    async def evict_idle(self) -> int:
        """Redis expires idle keys on its own."""
        return 0

    async def count(self) -> int:
        try:
            count = 0
            async for _ in self.redis.scan_iter(match=f"{self.key_prefix}:*"):
                count += 1
            return count
        except RedisError as e:
            logger.error(f"Redis error counting sessions: {e}")
            return 0

    async def health_check(self) -> bool:
        """Check if Redis connection is healthy."""
        try:
            await self.redis.ping()
            return True
        except RedisError:
            return False

    async def close(self) -> None:
        await self.redis.aclose()
        logger.info("Redis connection closed")

"""In-memory implementation of the conversation session store."""
from datetime import datetime, timedelta
from typing import Dict, Optional
import asyncio

from intake_agent.core.models import ConversationSession, utcnow
from intake_agent.core.session_store_base import SessionStoreBase
from intake_agent.utils.logger import get_logger
from intake_agent.utils.metrics import active_sessions, sessions_created, sessions_evicted

logger = get_logger(__name__)


class InMemorySessionStore(SessionStoreBase):
    """Stores sessions in a Python dictionary.

    Fast and simple, but:
    - State is lost on restart
    - Cannot scale horizontally

    The lock only guards the dictionary itself and is never held across
    I/O, so turns for different calls do not wait on each other.
    """

    def __init__(self, idle_timeout_seconds: int = 1800):
        super().__init__(idle_timeout_seconds)
        self._sessions: Dict[str, ConversationSession] = {}
        self._lock = asyncio.Lock()

    def _is_expired(self, session: ConversationSession, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return now - session.last_activity > timedelta(seconds=self.idle_timeout_seconds)

    async def get_or_create(self, call_sid: str) -> ConversationSession:
        """Return the live session for a call, creating it if absent or expired."""
        async with self._lock:
            session = self._sessions.get(call_sid)
            if session is not None and not self._is_expired(session):
                return session
            if session is not None:
                sessions_evicted.labels(reason="idle").inc()
            session = ConversationSession(call_sid=call_sid)
            self._sessions[call_sid] = session
            sessions_created.inc()
            active_sessions.set(len(self._sessions))
            logger.info(f"Created conversation session for {call_sid}")
            return session

    async def get(self, call_sid: str) -> Optional[ConversationSession]:
        async with self._lock:
            session = self._sessions.get(call_sid)
            if session is None or self._is_expired(session):
                return None
            return session

    async def save(self, session: ConversationSession) -> None:
        async with self._lock:
            session.touch()
            self._sessions[session.call_sid] = session

    async def evict(self, call_sid: str) -> bool:
        async with self._lock:
            session = self._sessions.pop(call_sid, None)
            active_sessions.set(len(self._sessions))
        if session is None:
            return False
        sessions_evicted.labels(reason="call_ended").inc()
        logger.info(f"Evicted session for {call_sid}")
        return True

    async def evict_idle(self) -> int:
        now = utcnow()
        async with self._lock:
            expired = [
                call_sid for call_sid, session in self._sessions.items()
                if self._is_expired(session, now)
            ]
            for call_sid in expired:
                del self._sessions[call_sid]
            active_sessions.set(len(self._sessions))
        if expired:
            sessions_evicted.labels(reason="idle").inc(len(expired))
            logger.info(f"Evicted {len(expired)} idle session(s)")
        return len(expired)

    async def count(self) -> int:
        async with self._lock:
            return len(self._sessions)

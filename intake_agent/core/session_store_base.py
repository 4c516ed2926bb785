"""Abstract base class for conversation session stores."""
from abc import ABC, abstractmethod
from typing import Optional

from intake_agent.core.models import ConversationSession


class SessionStoreBase(ABC):
    """Keyed store of per-call conversation sessions.

    Implementations can use different backends (in-memory, Redis, etc.)
    while maintaining a consistent interface. Each call SID has at most one
    writer at a time: Twilio sends the next speech turn only after the
    previous webhook has answered.
    """

    def __init__(self, idle_timeout_seconds: int = 1800):
        self.idle_timeout_seconds = idle_timeout_seconds

    @abstractmethod
    async def get_or_create(self, call_sid: str) -> ConversationSession:
        """Return the session for a call, creating it on first touch.

        Creation must be atomic: concurrent first touches for one call SID
        resolve to a single session.

        Args:
            call_sid: Twilio call SID

        Returns:
            Existing or newly created session
        """

    @abstractmethod
    async def get(self, call_sid: str) -> Optional[ConversationSession]:
        """Get a session by call SID.

        Args:
            call_sid: Twilio call SID

        Returns:
            Session if found and not expired, None otherwise
        """

    @abstractmethod
    async def save(self, session: ConversationSession) -> None:
        """Write a session back and refresh its idle timer.

        Args:
            session: Session mutated by the current turn
        """

    @abstractmethod
    async def evict(self, call_sid: str) -> bool:
        """Remove a session, e.g. when the call ends.

        Args:
            call_sid: Twilio call SID

        Returns:
            True if a session was removed
        """

    @abstractmethod
    async def evict_idle(self) -> int:
        """Remove sessions idle longer than the timeout.

        Returns:
            Number of sessions removed
        """

    @abstractmethod
    async def count(self) -> int:
        """Number of live sessions."""

    async def exists(self, call_sid: str) -> bool:
        """Check whether a call already has a live session."""
        return await self.get(call_sid) is not None

    async def close(self) -> None:
        """Release backend resources. Nothing to do by default."""

"""Unit tests for the in-memory session store."""
import asyncio
from datetime import timedelta

import pytest

from intake_agent.core.memory_session_store import InMemorySessionStore
from intake_agent.core.models import Stage, utcnow


def _age(session, seconds: int) -> None:
    session.last_activity = utcnow() - timedelta(seconds=seconds)


@pytest.mark.unit
class TestInMemorySessionStore:
    """Test session lifecycle in memory."""

    @pytest.mark.asyncio
    async def test_get_or_create_creates_once(self, session_store, test_call_sid):
        first = await session_store.get_or_create(test_call_sid)
        second = await session_store.get_or_create(test_call_sid)

        assert first is second
        assert first.stage == Stage.NAME
        assert first.messages == []
        assert await session_store.count() == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_touch_yields_one_session(self, session_store, test_call_sid):
        sessions = await asyncio.gather(
            *(session_store.get_or_create(test_call_sid) for _ in range(10))
        )

        assert all(s is sessions[0] for s in sessions)
        assert await session_store.count() == 1

    @pytest.mark.asyncio
    async def test_get_unknown_returns_none(self, session_store):
        assert await session_store.get("CAunknown") is None
        assert not await session_store.exists("CAunknown")

    @pytest.mark.asyncio
    async def test_save_refreshes_activity(self, session_store, test_call_sid):
        session = await session_store.get_or_create(test_call_sid)
        _age(session, 600)
        stale = session.last_activity

        session.stage = Stage.PHONE
        await session_store.save(session)

        stored = await session_store.get(test_call_sid)
        assert stored.stage == Stage.PHONE
        assert stored.last_activity > stale

    @pytest.mark.asyncio
    async def test_evict(self, session_store, test_call_sid):
        await session_store.get_or_create(test_call_sid)

        assert await session_store.evict(test_call_sid) is True
        assert await session_store.evict(test_call_sid) is False
        assert not await session_store.exists(test_call_sid)

    @pytest.mark.asyncio
    async def test_evict_idle_removes_only_stale_sessions(self):
        store = InMemorySessionStore(idle_timeout_seconds=60)
        stale = await store.get_or_create("CAstale")
        await store.get_or_create("CAfresh")
        _age(stale, 120)

        removed = await store.evict_idle()

        assert removed == 1
        assert not await store.exists("CAstale")
        assert await store.exists("CAfresh")

    @pytest.mark.asyncio
    async def test_expired_session_treated_as_absent(self):
        store = InMemorySessionStore(idle_timeout_seconds=60)
        session = await store.get_or_create("CAold")
        session.stage = Stage.EMAIL
        _age(session, 120)

        assert await store.get("CAold") is None

        recreated = await store.get_or_create("CAold")
        assert recreated is not session
        assert recreated.stage == Stage.NAME

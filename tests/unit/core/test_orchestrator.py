"""Unit tests for the turn orchestrator."""
import pytest

from intake_agent.core.models import Stage
from intake_agent.core.orchestrator import APOLOGY_REPLY, TurnOrchestrator, caller_id_digits
from tests.fakes import (
    INTAKE_UTTERANCES,
    SHORT_INTAKE_UTTERANCES,
    FakeRepository,
    FakeTurnGenerator,
)


def _orchestrator(store, generator, repository):
    return TurnOrchestrator(
        store=store,
        turn_generator=generator,
        repository=repository,
        clinic_name="Test Clinic",
    )


@pytest.mark.unit
class TestTurnOrchestrator:
    """Test one-turn processing and the full intake flow."""

    @pytest.mark.asyncio
    async def test_first_turn_records_name(self, session_store, turn_generator, repository, test_call_sid):
        orchestrator = _orchestrator(session_store, turn_generator, repository)

        reply = await orchestrator.handle_utterance(test_call_sid, "John Smith")

        session = await session_store.get(test_call_sid)
        assert reply.startswith("Reply 1")
        assert session.patient_fields.name == "John Smith"
        assert session.stage == Stage.PHONE
        assert [m.role for m in session.messages] == ["user", "assistant"]
        assert session.messages[0].content == "John Smith"

    @pytest.mark.asyncio
    async def test_context_reflects_fields_after_extraction(
        self, session_store, turn_generator, repository, test_call_sid
    ):
        orchestrator = _orchestrator(session_store, turn_generator, repository)

        await orchestrator.handle_utterance(test_call_sid, "John Smith")

        context, messages = turn_generator.calls[0]
        assert context.clinic_name == "Test Clinic"
        assert context.stage == Stage.PHONE
        assert context.known_fields == {"name": "John Smith"}
        assert context.missing_fields[0] == Stage.PHONE
        assert Stage.NAME not in context.missing_fields
        assert messages[-1].content == "John Smith"

    @pytest.mark.asyncio
    async def test_full_intake_persists_once(
        self, session_store, turn_generator, repository, test_call_sid, intake_utterances
    ):
        orchestrator = _orchestrator(session_store, turn_generator, repository)
        expected_stages = [
            Stage.PHONE, Stage.EMAIL, Stage.DATE_OF_BIRTH, Stage.REASON,
            Stage.INSURANCE_PROVIDER, Stage.INSURANCE_ID, Stage.SCHEDULING,
        ]

        for utterance, expected in zip(intake_utterances, expected_stages):
            await orchestrator.handle_utterance(test_call_sid, utterance)
            session = await session_store.get(test_call_sid)
            assert session.stage == expected
            # Nothing is stored before the final answer
            if expected is not Stage.SCHEDULING:
                assert repository.saved == []

        session = await session_store.get(test_call_sid)
        assert session.persisted is True
        assert session.patient_id == 42
        assert len(repository.saved) == 1

        saved_sid, saved_fields = repository.saved[0]
        assert saved_sid == test_call_sid
        assert saved_fields.name == "John Smith"
        assert saved_fields.phone == "5551234567"
        assert saved_fields.email == "john.smith@example.com"
        assert saved_fields.date_of_birth == "4/5/1990"
        assert saved_fields.reason == "I have lower back pain"
        assert saved_fields.insurance.provider == "Aetna"
        assert saved_fields.insurance.member_id == "AB12345"
        assert len(session.messages) == 14

    @pytest.mark.asyncio
    @pytest.mark.parametrize("utterances, provider, member_id", [
        (INTAKE_UTTERANCES, "Aetna", "AB12345"),
        (SHORT_INTAKE_UTTERANCES, "Cigna", "CIG98765"),
    ])
    async def test_stages_advance_in_order(
        self, session_store, turn_generator, repository, test_call_sid, utterances, provider, member_id
    ):
        orchestrator = _orchestrator(session_store, turn_generator, repository)
        stages = []

        for utterance in utterances:
            await orchestrator.handle_utterance(test_call_sid, utterance)
            stages.append((await session_store.get(test_call_sid)).stage)
            if len(stages) < len(utterances):
                assert repository.saved == []

        assert stages == [
            Stage.PHONE, Stage.EMAIL, Stage.DATE_OF_BIRTH, Stage.REASON,
            Stage.INSURANCE_PROVIDER, Stage.INSURANCE_ID, Stage.SCHEDULING,
        ]
        assert len(repository.saved) == 1
        saved_fields = repository.saved[0][1]
        assert saved_fields.insurance.provider == provider
        assert saved_fields.insurance.member_id == member_id

    @pytest.mark.asyncio
    async def test_no_second_save_after_persisted(
        self, session_store, turn_generator, repository, test_call_sid, intake_utterances
    ):
        orchestrator = _orchestrator(session_store, turn_generator, repository)
        for utterance in intake_utterances:
            await orchestrator.handle_utterance(test_call_sid, utterance)

        await orchestrator.handle_utterance(test_call_sid, "thanks, that's all")
        await orchestrator.handle_utterance(test_call_sid, "bye")

        assert len(repository.saved) == 1

    @pytest.mark.asyncio
    async def test_generation_failure_returns_apology(self, session_store, repository, test_call_sid):
        generator = FakeTurnGenerator(error=RuntimeError("LLM down"))
        orchestrator = _orchestrator(session_store, generator, repository)

        reply = await orchestrator.handle_utterance(test_call_sid, "John Smith")

        session = await session_store.get(test_call_sid)
        assert reply == APOLOGY_REPLY
        assert session.messages == []
        # Extraction still counts; the caller is not asked again
        assert session.patient_fields.name == "John Smith"
        assert session.stage == Stage.PHONE

    @pytest.mark.asyncio
    async def test_history_unchanged_after_failure_mid_call(
        self, session_store, repository, test_call_sid
    ):
        generator = FakeTurnGenerator()
        orchestrator = _orchestrator(session_store, generator, repository)
        await orchestrator.handle_utterance(test_call_sid, "John Smith")

        generator.error = TimeoutError("slow")
        reply = await orchestrator.handle_utterance(test_call_sid, "555-123-4567")

        session = await session_store.get(test_call_sid)
        assert reply == APOLOGY_REPLY
        assert len(session.messages) == 2

        generator.error = None
        await orchestrator.handle_utterance(test_call_sid, "it's john@example.com")
        session = await session_store.get(test_call_sid)
        assert len(session.messages) == 4
        assert session.stage == Stage.DATE_OF_BIRTH

    @pytest.mark.asyncio
    async def test_empty_reply_treated_as_failure(self, session_store, repository, test_call_sid):
        generator = FakeTurnGenerator(replies=["   "])
        orchestrator = _orchestrator(session_store, generator, repository)

        reply = await orchestrator.handle_utterance(test_call_sid, "John Smith")

        assert reply == APOLOGY_REPLY
        assert (await session_store.get(test_call_sid)).messages == []

    @pytest.mark.asyncio
    async def test_persists_even_when_generation_fails(
        self, session_store, repository, test_call_sid, intake_utterances
    ):
        generator = FakeTurnGenerator()
        orchestrator = _orchestrator(session_store, generator, repository)
        for utterance in intake_utterances[:-1]:
            await orchestrator.handle_utterance(test_call_sid, utterance)

        generator.error = RuntimeError("LLM down")
        reply = await orchestrator.handle_utterance(test_call_sid, intake_utterances[-1])

        session = await session_store.get(test_call_sid)
        assert reply == APOLOGY_REPLY
        assert session.persisted is True
        assert len(repository.saved) == 1

    @pytest.mark.asyncio
    async def test_persistence_failure_retried_next_turn(
        self, session_store, turn_generator, test_call_sid, intake_utterances
    ):
        repository = FakeRepository(failures=1)
        orchestrator = _orchestrator(session_store, turn_generator, repository)
        for utterance in intake_utterances:
            reply = await orchestrator.handle_utterance(test_call_sid, utterance)

        session = await session_store.get(test_call_sid)
        assert reply != APOLOGY_REPLY
        assert session.persisted is False
        assert repository.saved == []

        await orchestrator.handle_utterance(test_call_sid, "is that everything?")

        session = await session_store.get(test_call_sid)
        assert session.persisted is True
        assert len(repository.saved) == 1

    @pytest.mark.asyncio
    async def test_caller_id_fills_phone(self, session_store, turn_generator, repository, test_call_sid):
        orchestrator = _orchestrator(session_store, turn_generator, repository)

        await orchestrator.handle_utterance(test_call_sid, "John Smith", caller_phone="+1 (555) 777-8888")

        session = await session_store.get(test_call_sid)
        assert session.patient_fields.phone == "15557778888"
        assert session.caller_phone == "+1 (555) 777-8888"
        # Phone is already known, so the next question is email
        assert session.stage == Stage.EMAIL

    @pytest.mark.asyncio
    async def test_spoken_phone_beats_caller_id(self, session_store, turn_generator, repository, test_call_sid):
        orchestrator = _orchestrator(session_store, turn_generator, repository)

        await orchestrator.handle_utterance(test_call_sid, "John Smith")
        await orchestrator.handle_utterance(test_call_sid, "555-123-4567", caller_phone="+15557778888")

        session = await session_store.get(test_call_sid)
        assert session.patient_fields.phone == "5551234567"

    @pytest.mark.asyncio
    async def test_calls_are_isolated(self, session_store, turn_generator, repository):
        orchestrator = _orchestrator(session_store, turn_generator, repository)

        await orchestrator.handle_utterance("CAfirst", "John Smith")
        await orchestrator.handle_utterance("CAsecond", "Jane Doe")

        first = await session_store.get("CAfirst")
        second = await session_store.get("CAsecond")
        assert first.patient_fields.name == "John Smith"
        assert second.patient_fields.name == "Jane Doe"


@pytest.mark.unit
class TestCallerIdDigits:

    def test_strips_formatting(self):
        assert caller_id_digits("+1 (555) 123-4567") == "15551234567"

    def test_empty(self):
        assert caller_id_digits(None) is None
        assert caller_id_digits("") is None
        assert caller_id_digits("anonymous") is None

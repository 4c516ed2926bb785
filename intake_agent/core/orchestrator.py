"""Turn orchestration for the intake conversation.

One call to ``TurnOrchestrator.handle_utterance`` processes one speech turn:
extract fields, resolve the next stage, ask the turn generator for a reply,
and store the finished intake the first time every field is known.
"""
import asyncio
import re
import time
from typing import List, Optional, Protocol

from intake_agent.config.prompts import ERROR_PROMPTS
from intake_agent.core.extractor import extract
from intake_agent.core.models import (
    ConversationSession,
    Message,
    PatientFields,
    TurnContext,
)
from intake_agent.core.session_store_base import SessionStoreBase
from intake_agent.core.stages import is_terminal, missing_stages, resolve_stage
from intake_agent.utils.logger import get_logger
from intake_agent.utils.metrics import (
    conversation_turns,
    intake_persisted,
    llm_latency,
    turn_generation_failures,
)
from intake_agent.utils.structured_logging import log_call_event, log_error, log_utterance

logger = get_logger(__name__)

APOLOGY_REPLY = ERROR_PROMPTS["apology"]


class TurnGenerator(Protocol):
    """Produces the assistant's next reply."""

    async def generate(self, context: TurnContext, messages: List[Message]) -> str:
        ...


class IntakeRepository(Protocol):
    """Durable storage for a completed intake. Blocking; called off the event loop."""

    def save_intake(self, call_sid: str, fields: PatientFields) -> int:
        ...


def caller_id_digits(caller_phone: Optional[str]) -> Optional[str]:
    if not caller_phone:
        return None
    digits = re.sub(r'\D', '', caller_phone)
    return digits or None


class TurnOrchestrator:
    """Drives one call's intake conversation, turn by turn."""

    def __init__(
        self,
        store: SessionStoreBase,
        turn_generator: TurnGenerator,
        repository: IntakeRepository,
        clinic_name: str,
    ):
        self.store = store
        self.turn_generator = turn_generator
        self.repository = repository
        self.clinic_name = clinic_name

    async def handle_utterance(
        self,
        call_sid: str,
        utterance: str,
        caller_phone: Optional[str] = None,
    ) -> str:
        """Process one caller utterance and return the reply to speak.

        Args:
            call_sid: Twilio call SID
            utterance: Transcribed caller speech
            caller_phone: Caller ID from the transport, if any

        Returns:
            Reply text. A fixed apology when the turn generator fails; in
            that case neither side of the turn is recorded, so the next
            utterance retries against the same history.
        """
        session = await self.store.get_or_create(call_sid)
        if caller_phone and not session.caller_phone:
            session.caller_phone = caller_phone

        prompted_stage = session.stage
        fields = extract(utterance, session.patient_fields, prompted_stage)
        if not fields.phone:
            fields.phone = caller_id_digits(caller_phone)
        session.patient_fields = fields
        session.stage = resolve_stage(fields)

        log_utterance(logger, utterance, call_sid, stage=prompted_stage.value)
        conversation_turns.labels(stage=session.stage.value).inc()

        pending = session.messages + [Message(role="user", content=utterance)]
        reply = await self._generate_reply(session, pending)
        if reply is None:
            reply = APOLOGY_REPLY
        else:
            session.messages = pending
            session.add_message("assistant", reply)
            log_utterance(logger, reply, call_sid, speaker="assistant", stage=session.stage.value)

        if is_terminal(session.stage) and not session.persisted:
            await self._persist(session)

        await self.store.save(session)
        return reply

    def build_context(self, session: ConversationSession) -> TurnContext:
        return TurnContext(
            clinic_name=self.clinic_name,
            stage=session.stage,
            known_fields=session.patient_fields.snapshot(),
            missing_fields=missing_stages(session.patient_fields),
        )

    async def _generate_reply(
        self,
        session: ConversationSession,
        pending: List[Message],
    ) -> Optional[str]:
        context = self.build_context(session)
        started = time.perf_counter()
        try:
            reply = await self.turn_generator.generate(context, pending)
        except Exception as e:
            turn_generation_failures.labels(error_type=type(e).__name__).inc()
            log_error(logger, e, "Turn generation failed", call_sid=session.call_sid)
            return None
        finally:
            llm_latency.observe(time.perf_counter() - started)

        if not reply or not reply.strip():
            turn_generation_failures.labels(error_type="EmptyReply").inc()
            logger.warning(f"Turn generator returned an empty reply for {session.call_sid}")
            return None
        return reply.strip()

    async def _persist(self, session: ConversationSession) -> None:
        """Store the completed intake; on failure leave it unpersisted for the next turn."""
        try:
            patient_id = await asyncio.to_thread(
                self.repository.save_intake,
                session.call_sid,
                session.patient_fields,
            )
        except Exception as e:
            intake_persisted.labels(status="error").inc()
            log_error(logger, e, "Failed to persist intake", call_sid=session.call_sid)
            return

        session.persisted = True
        session.patient_id = patient_id
        intake_persisted.labels(status="success").inc()
        log_call_event(logger, "intake_persisted", session.call_sid, patient_id=patient_id)

"""Twilio voice webhook handlers.

Each caller utterance arrives as one ``/voice/process`` request carrying
Twilio's speech transcription. The reply is spoken back inside another
speech ``<Gather>`` that posts the next utterance to the same endpoint.
"""
from fastapi import HTTPException, Request, Response
from twilio.twiml.voice_response import VoiceResponse

from intake_agent.config.constants import ConversationConfig
from intake_agent.config.prompts import ERROR_PROMPTS, GREETING
from intake_agent.config.settings import get_settings
from intake_agent.core.orchestrator import APOLOGY_REPLY
from intake_agent.utils.logger import get_logger
from intake_agent.utils.metrics import twilio_webhooks
from intake_agent.utils.structured_logging import log_call_event, log_error

logger = get_logger(__name__)
settings = get_settings()

PROCESS_PATH = "/voice/process"


def callback_url(path: str) -> str:
    """Absolute callback URL when a public base URL is configured, else the bare path."""
    base = settings.public_base_url.strip().rstrip("/")
    return f"{base}{path}" if base else path


def gather_twiml(text: str) -> Response:
    """Speak ``text`` and listen for the caller's answer.

    If the caller stays silent, Twilio falls through to the redirect and
    posts to the process endpoint without a ``SpeechResult``, which
    re-prompts.
    """
    action = callback_url(PROCESS_PATH)
    response = VoiceResponse()
    gather = response.gather(
        input="speech",
        action=action,
        method="POST",
        speech_timeout=ConversationConfig.SPEECH_TIMEOUT,
        speech_model=ConversationConfig.SPEECH_MODEL,
    )
    gather.say(text, voice=ConversationConfig.VOICE)
    response.redirect(action, method="POST")
    return Response(content=str(response), media_type="application/xml")


async def handle_incoming_call(request: Request) -> Response:
    """Greet a new caller and ask for their name."""
    twilio_webhooks.labels(webhook_type='incoming', status='received').inc()

    form_data = await request.form()
    call_sid = form_data.get("CallSid", "")
    log_call_event(logger, "call_started", call_sid or "unknown")

    return gather_twiml(GREETING.format(clinic_name=settings.clinic_name))


async def handle_speech_turn(request: Request) -> Response:
    """Run one conversation turn for a transcribed utterance.

    Raises:
        HTTPException: 400 when the request carries no CallSid
    """
    form_data = await request.form()
    call_sid = (form_data.get("CallSid") or "").strip()
    if not call_sid:
        twilio_webhooks.labels(webhook_type='process', status='bad_request').inc()
        raise HTTPException(status_code=400, detail="Missing CallSid")

    speech = (form_data.get("SpeechResult") or "").strip()
    if not speech:
        twilio_webhooks.labels(webhook_type='process', status='no_speech').inc()
        logger.debug(f"No speech recognized for {call_sid}; re-prompting")
        return gather_twiml(ERROR_PROMPTS["not_understood"])

    twilio_webhooks.labels(webhook_type='process', status='received').inc()
    orchestrator = request.app.state.orchestrator
    try:
        reply = await orchestrator.handle_utterance(
            call_sid,
            speech,
            caller_phone=form_data.get("From"),
        )
    except Exception as e:
        twilio_webhooks.labels(webhook_type='process', status='error').inc()
        log_error(logger, e, "Turn processing failed", call_sid=call_sid)
        reply = APOLOGY_REPLY

    return gather_twiml(reply)


async def handle_call_status(request: Request) -> Response:
    """Drop the conversation session once Twilio reports the call is over."""
    form_data = await request.form()
    call_sid = form_data.get("CallSid", "")
    call_status = form_data.get("CallStatus", "")
    twilio_webhooks.labels(webhook_type='status', status='received').inc()

    if call_sid and call_status in ConversationConfig.FINAL_CALL_STATUSES:
        evicted = await request.app.state.session_store.evict(call_sid)
        log_call_event(logger, "call_ended", call_sid, call_status=call_status, evicted=evicted)

    return Response(status_code=204)

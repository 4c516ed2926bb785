"""Structured logging helpers for the intake agent.

All helpers attach machine-readable fields through ``extra=`` and run any
caller-provided text through the PHI redactor first.
"""
import logging
from typing import Any, Dict, Optional

from intake_agent.config.constants import LoggingConfig
from intake_agent.utils.phi_redactor import get_phi_redactor


def log_call_event(
    logger: logging.Logger,
    event: str,
    call_sid: str,
    level: int = logging.INFO,
    **extra_fields: Any
) -> None:
    """Log a call-related event with structured data.

    Args:
        logger: Logger instance to use
        event: Event name (e.g., "session_created", "intake_persisted")
        call_sid: Twilio call SID
        level: Log level
        **extra_fields: Additional fields to include in the log
    """
    logger.log(
        level,
        f"{event} [{call_sid}]",
        extra={
            "event": event,
            "call_sid": call_sid,
            **extra_fields
        }
    )


def log_utterance(
    logger: logging.Logger,
    text: str,
    call_sid: str,
    speaker: str = "caller",
    stage: Optional[str] = None,
    redact_phi: bool = True,
) -> None:
    """Log one side of a turn with PHI redacted and the text truncated."""
    if redact_phi:
        text = get_phi_redactor().redact(text, redact_level="partial")
    text = (text or "")[:LoggingConfig.MAX_LOG_TEXT_LENGTH]

    logger.info(
        f"{speaker} [{call_sid}] ({stage}): {text}",
        extra={
            "event": "utterance",
            "call_sid": call_sid,
            "speaker": speaker,
            "stage": stage,
            "text": text,
        }
    )


def log_error(
    logger: logging.Logger,
    error: Exception,
    context: str,
    call_sid: Optional[str] = None,
    **extra_fields: Any
) -> None:
    """Log an error with context.

    Args:
        logger: Logger instance
        error: Exception that occurred
        context: Description of what was happening when the error occurred
        call_sid: Optional call SID
        **extra_fields: Additional fields
    """
    extra: Dict[str, Any] = {
        "event": "error",
        "error_type": type(error).__name__,
        "error_message": get_phi_redactor().redact(str(error)),
        "context": context,
        **extra_fields
    }

    if call_sid:
        extra["call_sid"] = call_sid

    logger.error(
        f"{context}: {type(error).__name__}",
        extra=extra,
        exc_info=True
    )

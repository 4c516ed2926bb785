"""Twilio SMS confirmations."""
import re
from typing import Optional

from pybreaker import CircuitBreakerError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from intake_agent.config.constants import RetryConfig
from intake_agent.config.settings import Settings, get_settings
from intake_agent.core.exceptions import NotificationError
from intake_agent.utils.circuit_breaker import sms_breaker
from intake_agent.utils.logger import get_logger
from intake_agent.utils.phi_redactor import redact_phi

logger = get_logger(__name__)


def is_transient_sms_error(exc: BaseException) -> bool:
    if isinstance(exc, TwilioRestException):
        return exc.status == 429 or exc.status >= 500
    return isinstance(exc, (ConnectionError, TimeoutError, OSError))


def to_e164(phone: str) -> str:
    """Format stored digits for Twilio, assuming US numbers when no country code is given."""
    digits = re.sub(r'\D', '', phone)
    if len(digits) == 10:
        return "+1" + digits
    return "+" + digits


class SmsService:
    """Sends SMS from the clinic's Twilio number."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Client] = None):
        self.settings = settings or get_settings()
        self.client = client or Client(
            self.settings.twilio_account_sid,
            self.settings.get_twilio_auth_token(),
        )
        self.from_number = self.settings.twilio_phone_number

    def send_confirmation(self, to_phone: str, body: str) -> str:
        """Send one SMS.

        Returns:
            Twilio message SID

        Raises:
            NotificationError: Delivery failed after retries or the circuit is open
        """
        try:
            return self._send(to_phone, body)
        except (TwilioRestException, CircuitBreakerError, OSError) as e:
            raise NotificationError("sms", str(e)) from e

    @retry(
        stop=stop_after_attempt(RetryConfig.MAX_ATTEMPTS),
        wait=wait_exponential(
            multiplier=RetryConfig.BACKOFF_MULTIPLIER,
            min=RetryConfig.BACKOFF_MIN_SEC,
            max=RetryConfig.BACKOFF_MAX_SEC,
        ),
        retry=retry_if_exception(is_transient_sms_error),
        reraise=True,
    )
    def _send(self, to_phone: str, body: str) -> str:
        message = sms_breaker.call(
            self.client.messages.create,
            to=to_e164(to_phone),
            from_=self.from_number,
            body=body,
        )
        logger.info(f"Sent SMS {message.sid} to {redact_phi(to_phone)}")
        return message.sid

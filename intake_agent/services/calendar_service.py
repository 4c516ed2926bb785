"""Google Calendar booking for confirmed appointments."""
from datetime import date, datetime, time, timedelta
from typing import Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from pybreaker import CircuitBreakerError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from intake_agent.config.constants import AppointmentConfig, RetryConfig
from intake_agent.config.settings import Settings, get_settings
from intake_agent.core.exceptions import NotificationError
from intake_agent.core.models import AppointmentRecord, CalendarEvent
from intake_agent.utils.circuit_breaker import calendar_breaker
from intake_agent.utils.logger import get_logger

logger = get_logger(__name__)


def is_transient_calendar_error(exc: BaseException) -> bool:
    """Rate limits, server errors and network failures are worth retrying."""
    if isinstance(exc, HttpError):
        return exc.resp.status == 429 or exc.resp.status >= 500
    return isinstance(exc, (ConnectionError, TimeoutError, OSError))


def build_event_body(
    appointment: AppointmentRecord,
    clinic_name: str,
    timezone: str,
) -> dict:
    start = datetime.combine(
        date.fromisoformat(appointment.appointment_date),
        time.fromisoformat(appointment.appointment_time),
    )
    end = start + timedelta(minutes=AppointmentConfig.DURATION_MINUTES)
    patient = appointment.patient_name or f"Patient {appointment.patient_id}"
    return {
        "summary": f"{clinic_name}: {patient}",
        "description": (
            f"Reason: {appointment.reason or 'Not specified'}\n"
            f"Phone: {appointment.patient_phone or 'Unknown'}\n"
            f"Patient ID: {appointment.patient_id}"
        ),
        "start": {"dateTime": start.isoformat(), "timeZone": timezone},
        "end": {"dateTime": end.isoformat(), "timeZone": timezone},
    }


class CalendarService:
    """Creates calendar events with a long-lived OAuth refresh token.

    The refresh token comes from ``scripts/get_google_token.py``. When no
    Google credentials are configured, booking is skipped.
    """

    def __init__(self, settings: Optional[Settings] = None, service=None):
        self.settings = settings or get_settings()
        self._service = service

    @property
    def enabled(self) -> bool:
        return self._service is not None or self.settings.calendar_enabled

    def _get_service(self):
        if self._service is None:
            credentials = Credentials(
                token=None,
                refresh_token=self.settings.get_google_refresh_token(),
                client_id=self.settings.google_client_id,
                client_secret=self.settings.get_google_client_secret(),
                token_uri=AppointmentConfig.GOOGLE_TOKEN_URI,
                scopes=AppointmentConfig.CALENDAR_SCOPES,
            )
            self._service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
        return self._service

    @retry(
        stop=stop_after_attempt(RetryConfig.MAX_ATTEMPTS),
        wait=wait_exponential(
            multiplier=RetryConfig.BACKOFF_MULTIPLIER,
            min=RetryConfig.BACKOFF_MIN_SEC,
            max=RetryConfig.BACKOFF_MAX_SEC,
        ),
        retry=retry_if_exception(is_transient_calendar_error),
        reraise=True,
    )
    def _insert_event(self, body: dict) -> dict:
        request = self._get_service().events().insert(
            calendarId=self.settings.google_calendar_id,
            body=body,
        )
        return calendar_breaker.call(request.execute)

    def book_appointment(self, appointment: AppointmentRecord) -> Optional[CalendarEvent]:
        """Create the calendar event for an appointment.

        Returns:
            The created event, or None when calendar booking is not configured

        Raises:
            NotificationError: Booking failed after retries or the circuit is open
        """
        if not self.enabled:
            logger.info("Google Calendar not configured; skipping booking")
            return None

        body = build_event_body(
            appointment,
            clinic_name=self.settings.clinic_name,
            timezone=self.settings.clinic_timezone,
        )
        try:
            event = self._insert_event(body)
        except (HttpError, CircuitBreakerError, OSError) as e:
            raise NotificationError("calendar", str(e)) from e
        logger.info(f"Booked calendar event {event.get('id')} for appointment {appointment.id}")
        return CalendarEvent(event_id=event["id"], html_link=event.get("htmlLink"))

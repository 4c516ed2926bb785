"""Appointment confirmation: store the appointment, then notify."""
import asyncio
from typing import Optional

from intake_agent.config.prompts import SMS_CONFIRMATION
from intake_agent.core.exceptions import PatientNotFoundError, PersistenceError
from intake_agent.core.models import (
    AppointmentConfirmation,
    AppointmentRecord,
    AppointmentRequest,
)
from intake_agent.services.calendar_service import CalendarService
from intake_agent.services.persistence_service import PersistenceService
from intake_agent.services.sms_service import SmsService
from intake_agent.utils.logger import get_logger
from intake_agent.utils.metrics import appointments_confirmed, notification_failures
from intake_agent.utils.structured_logging import log_error

logger = get_logger(__name__)


def format_sms_body(record: AppointmentRecord, clinic_name: str, request: AppointmentRequest) -> str:
    return SMS_CONFIRMATION.format(
        name=record.patient_name or "there",
        clinic_name=clinic_name,
        date=request.appointment_date.strftime("%A, %B %d"),
        time=request.appointment_time.strftime("%I:%M %p").lstrip("0"),
    )


class AppointmentService:
    """Confirms appointments for stored patients.

    Only the appointment insert is required to succeed. Calendar booking,
    the calendar annotation and the SMS are attempted in that order and
    degrade to a missing link or ``sms_sent=False`` when they fail.
    """

    def __init__(
        self,
        persistence: PersistenceService,
        calendar: CalendarService,
        sms: SmsService,
        clinic_name: str,
    ):
        self.persistence = persistence
        self.calendar = calendar
        self.sms = sms
        self.clinic_name = clinic_name

    async def confirm(self, request: AppointmentRequest) -> AppointmentConfirmation:
        """Store and announce one appointment.

        Raises:
            PatientNotFoundError: Unknown patient id; nothing was written
            PersistenceError: The appointment insert was rolled back
        """
        try:
            record = await asyncio.to_thread(
                self.persistence.create_appointment,
                request.patient_id,
                request.appointment_date,
                request.appointment_time,
                request.reason,
            )
        except PatientNotFoundError:
            appointments_confirmed.labels(status="not_found").inc()
            raise
        except PersistenceError:
            appointments_confirmed.labels(status="error").inc()
            raise

        calendar_link = await self._book_calendar(record)
        sms_sent = await self._send_sms(record, request)

        appointments_confirmed.labels(status="success").inc()
        logger.info(
            f"Confirmed appointment {record.id} for patient {record.patient_id}",
            extra={"calendar_booked": calendar_link is not None, "sms_sent": sms_sent},
        )
        return AppointmentConfirmation(
            appointment_id=record.id,
            calendar_event_link=calendar_link,
            sms_sent=sms_sent,
        )

    async def _book_calendar(self, record: AppointmentRecord) -> Optional[str]:
        try:
            event = await asyncio.to_thread(self.calendar.book_appointment, record)
        except Exception as e:
            notification_failures.labels(channel="calendar").inc()
            log_error(logger, e, f"Calendar booking failed for appointment {record.id}")
            return None

        if event is None:
            return None

        try:
            await asyncio.to_thread(
                self.persistence.annotate_appointment,
                record.id,
                f"Google Calendar event: {event.event_id}",
            )
        except PersistenceError as e:
            log_error(logger, e, f"Could not record calendar event on appointment {record.id}")
        return event.html_link

    async def _send_sms(self, record: AppointmentRecord, request: AppointmentRequest) -> bool:
        if not record.patient_phone:
            logger.info(f"No phone on file for patient {record.patient_id}; skipping SMS")
            return False

        body = format_sms_body(record, self.clinic_name, request)
        try:
            await asyncio.to_thread(self.sms.send_confirmation, record.patient_phone, body)
        except Exception as e:
            notification_failures.labels(channel="sms").inc()
            log_error(logger, e, f"SMS confirmation failed for appointment {record.id}")
            return False
        return True

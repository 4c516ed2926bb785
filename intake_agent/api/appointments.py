"""Appointment confirmation endpoint handler."""
from fastapi import Request
from fastapi.responses import JSONResponse

from intake_agent.core.exceptions import PatientNotFoundError, PersistenceError
from intake_agent.core.models import AppointmentRequest
from intake_agent.utils.logger import get_logger
from intake_agent.utils.structured_logging import log_error

logger = get_logger(__name__)


async def confirm_appointment(request: Request, body: AppointmentRequest):
    """Store an appointment for a known patient and send notifications.

    Returns:
        AppointmentConfirmation on success; a JSON error body with 404 for
        an unknown patient or 500 when the appointment could not be stored
    """
    service = request.app.state.appointment_service
    try:
        return await service.confirm(body)
    except PatientNotFoundError as e:
        logger.warning(f"Appointment confirmation for unknown patient {e.patient_id}")
        return JSONResponse(status_code=404, content={"success": False, "error": str(e)})
    except PersistenceError as e:
        log_error(logger, e, f"Appointment for patient {body.patient_id} was not stored")
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})
    except Exception as e:
        log_error(logger, e, f"Appointment confirmation failed for patient {body.patient_id}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to confirm appointment"},
        )

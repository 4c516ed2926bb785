"""Patient lookup endpoint handler."""
import asyncio

from fastapi import Request
from fastapi.responses import JSONResponse

from intake_agent.utils.logger import get_logger

logger = get_logger(__name__)


async def get_patient(request: Request, patient_id: int):
    """Return the stored patient with insurance details, or 404."""
    persistence = request.app.state.persistence
    patient = await asyncio.to_thread(persistence.get_patient, patient_id)
    if patient is None:
        logger.info(f"Patient {patient_id} not found")
        return JSONResponse(status_code=404, content={"error": "Patient not found"})
    return patient

"""Main entry point for the telephone intake agent."""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from intake_agent.api.appointments import confirm_appointment
from intake_agent.api.health import router as health_router
from intake_agent.api.metrics import router as metrics_router
from intake_agent.api.patients import get_patient
from intake_agent.api.webhooks import (
    handle_call_status,
    handle_incoming_call,
    handle_speech_turn,
)
from intake_agent.config.constants import RateLimitConfig
from intake_agent.config.settings import get_settings
from intake_agent.core.models import AppointmentConfirmation, AppointmentRequest
from intake_agent.core.orchestrator import TurnOrchestrator
from intake_agent.core.session_store_factory import create_session_store
from intake_agent.core.shutdown import shutdown, start_idle_sweeper
from intake_agent.db.session import build_engine, build_session_factory
from intake_agent.services.appointment_service import AppointmentService
from intake_agent.services.calendar_service import CalendarService
from intake_agent.services.llm_service import LLMService
from intake_agent.services.persistence_service import PersistenceService
from intake_agent.services.sms_service import SmsService
from intake_agent.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

# Rate limiter - uses remote IP address as key. Only the /api routes are
# limited: Twilio delivers every call from a small pool of addresses.
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the services onto ``app.state`` and tear them down on exit.

    Handlers reach their collaborators through ``request.app.state``:
    ``orchestrator``, ``session_store``, ``persistence``,
    ``appointment_service``, ``llm_service`` and ``sms_service``.
    """
    logger.info("Starting intake agent...")

    engine = build_engine(settings.database_url)
    persistence = PersistenceService(build_session_factory(engine))
    persistence.create_tables()

    store = await create_session_store(settings)
    llm_service = LLMService()
    sms_service = SmsService(settings)

    app.state.session_store = store
    app.state.persistence = persistence
    app.state.llm_service = llm_service
    app.state.sms_service = sms_service
    app.state.orchestrator = TurnOrchestrator(
        store=store,
        turn_generator=llm_service,
        repository=persistence,
        clinic_name=settings.clinic_name,
    )
    app.state.appointment_service = AppointmentService(
        persistence=persistence,
        calendar=CalendarService(settings),
        sms=sms_service,
        clinic_name=settings.clinic_name,
    )

    sweeper = start_idle_sweeper(store, settings.session_sweep_interval_seconds)
    logger.info("Application started successfully")

    yield

    logger.info("Initiating graceful shutdown...")
    await shutdown(store, sweeper=sweeper, engine=engine)
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Intake Voice Agent",
    description="Telephone assistant that collects patient intake details over Twilio",
    version="1.0.0",
    lifespan=lifespan
)

# Add rate limiter to app state
app.state.limiter = limiter

# Add rate limit exceeded handler
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(health_router)
app.include_router(metrics_router)


# Twilio webhook endpoints
@app.post("/voice/incoming")
async def voice_incoming_endpoint(request: Request):
    """Answer a new call with the greeting."""
    return await handle_incoming_call(request)


@app.post("/voice/process")
async def voice_process_endpoint(request: Request):
    """Process one transcribed caller utterance."""
    return await handle_speech_turn(request)


@app.post("/voice/status", status_code=204)
async def voice_status_endpoint(request: Request):
    """Twilio call status callback."""
    return await handle_call_status(request)


@app.post("/api/appointments/confirm", response_model=AppointmentConfirmation)
@limiter.limit(f"{RateLimitConfig.API_PER_MINUTE}/minute")
async def confirm_appointment_endpoint(request: Request, body: AppointmentRequest):
    """Confirm an appointment and notify the patient."""
    return await confirm_appointment(request, body)


@app.get("/api/patients/{patient_id}")
@limiter.limit(f"{RateLimitConfig.API_PER_MINUTE}/minute")
async def get_patient_endpoint(request: Request, patient_id: int):
    """Look up a stored patient."""
    return await get_patient(request, patient_id)


if __name__ == "__main__":
    import uvicorn
    import os

    # Use PORT from environment variable when the platform provides one
    port = int(os.environ.get("PORT", 8000))

    logger.info(f"Starting server on port {port}")

    uvicorn.run(
        "intake_agent.main:app",
        host="0.0.0.0",
        port=port,
        log_level="info"
    )

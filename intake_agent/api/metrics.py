"""Prometheus metrics endpoint.

Exposes application metrics in Prometheus format for scraping.
"""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Example:
        ```
        curl http://localhost:8000/metrics
        ```

    Metrics exposed:
        - intake_agent_turns_total: Speech turns by resulting stage
        - intake_agent_turn_generation_failures_total: Fallback apologies
        - intake_agent_llm_latency_seconds: Turn generation latency
        - intake_agent_active_sessions: Live conversation sessions
        - intake_agent_intake_persisted_total: Intake save outcomes
        - intake_agent_appointments_confirmed_total: Confirmation outcomes
        - intake_agent_notification_failures_total: Calendar/SMS failures
        - ... and more (see intake_agent/utils/metrics.py)
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )

"""Health check endpoints with dependency verification."""
import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from intake_agent.config.constants import HealthCheckConfig
from intake_agent.config.settings import get_settings
from intake_agent.core.redis_session_store import RedisSessionStore
from intake_agent.utils.circuit_breaker import get_circuit_status
from intake_agent.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter()

START_TIME = time.monotonic()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _run_check(name: str, probe: Callable[[], Any]) -> Dict[str, Any]:
    """Run a blocking probe in a worker thread with the dependency timeout."""
    try:
        await asyncio.wait_for(
            asyncio.to_thread(probe),
            timeout=HealthCheckConfig.DEPENDENCY_CHECK_TIMEOUT_SEC,
        )
        return {"status": "healthy", "message": f"{name} accessible"}
    except Exception as e:
        logger.error(f"{name} health check failed: {e}")
        return {
            "status": "unhealthy",
            "message": f"{name} error: {str(e)}",
            "error": type(e).__name__,
        }


async def check_openai_health(request: Request) -> Dict[str, Any]:
    """Check OpenAI API connectivity."""
    return await _run_check("OpenAI API", request.app.state.llm_service.ping)


async def check_twilio_health(request: Request) -> Dict[str, Any]:
    """Check Twilio API connectivity."""
    client = request.app.state.sms_service.client

    def fetch_account():
        return client.api.accounts(settings.twilio_account_sid).fetch()

    return await _run_check("Twilio API", fetch_account)


async def check_database_health(request: Request) -> Dict[str, Any]:
    """Check the relational database with ``SELECT 1``."""
    return await _run_check("Database", request.app.state.persistence.ping)


async def check_redis_health(request: Request) -> Dict[str, Any]:
    """Check Redis when it backs the session store."""
    store = request.app.state.session_store
    if not isinstance(store, RedisSessionStore):
        return {"status": "skipped", "message": "In-memory session store in use"}

    if await store.health_check():
        return {"status": "healthy", "message": "Redis accessible"}
    return {"status": "unhealthy", "message": "Redis ping failed"}


@router.get("/health")
async def health_check():
    """Basic health check - returns 200 if service is running."""
    return {
        "status": "healthy",
        "timestamp": _timestamp(),
        "uptime": round(time.monotonic() - START_TIME, 3),
    }


@router.get("/health/detailed")
async def detailed_health_check(request: Request):
    """Comprehensive health check with dependency verification.

    Returns 200 if all critical dependencies are healthy, 503 otherwise.
    """
    logger.info("Running detailed health check")

    checks_coros = {
        "openai": check_openai_health(request),
        "twilio": check_twilio_health(request),
        "database": check_database_health(request),
        "redis": check_redis_health(request),
    }

    checks = {}
    results = await asyncio.gather(*checks_coros.values(), return_exceptions=True)
    for name, result in zip(checks_coros, results):
        if isinstance(result, Exception):
            checks[name] = {
                "status": "error",
                "message": str(result),
                "error": type(result).__name__,
            }
        else:
            checks[name] = result

    # Critical dependencies: OpenAI, Twilio, database
    critical_deps = ["openai", "twilio", "database"]
    critical_healthy = all(
        checks.get(dep, {}).get("status") == "healthy"
        for dep in critical_deps
    )

    # Redis is optional; skipped means the in-memory store is in use
    optional_healthy = checks["redis"].get("status") in ["healthy", "skipped"]

    all_healthy = critical_healthy and optional_healthy
    circuit_breakers = get_circuit_status()

    response = {
        "status": "healthy" if all_healthy else "unhealthy",
        "timestamp": _timestamp(),
        "checks": checks,
        "circuit_breakers": circuit_breakers,
        "summary": {
            "critical_healthy": critical_healthy,
            "optional_healthy": optional_healthy,
            "total_checks": len(checks),
            "healthy_count": sum(1 for c in checks.values() if c.get("status") == "healthy"),
            "unhealthy_count": sum(1 for c in checks.values() if c.get("status") == "unhealthy"),
            "skipped_count": sum(1 for c in checks.values() if c.get("status") == "skipped"),
            "circuit_breakers_open": sum(1 for cb in circuit_breakers.values() if cb.get("state") == "open"),
        },
    }

    return JSONResponse(content=response, status_code=200 if all_healthy else 503)


@router.get("/health/live")
async def liveness_probe():
    """Kubernetes liveness probe - checks if service is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_probe(request: Request):
    """Kubernetes readiness probe - checks if service can handle traffic."""
    if getattr(request.app.state, "orchestrator", None) is None:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "error": "Application still starting"},
        )

    database = await check_database_health(request)
    if database["status"] != "healthy":
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "error": database["message"]},
        )
    return {"status": "ready"}

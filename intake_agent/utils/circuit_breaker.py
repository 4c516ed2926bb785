"""Circuit breakers for external services.

When a service fails repeatedly, the circuit "opens" and calls fail fast
with ``CircuitBreakerError`` instead of waiting on timeouts.

States:
- CLOSED: Normal operation, requests flow through
- OPEN: Service failing, immediately return error (fail fast)
- HALF-OPEN: After cooldown, try one request to check if service recovered

Breakers wrap blocking client calls, which callers run in a worker thread:

    result = await asyncio.to_thread(openai_breaker.call, client_fn, *args)
"""
from pybreaker import CircuitBreaker, CircuitBreakerListener

from intake_agent.config.constants import CircuitBreakerConfig
from intake_agent.utils.logger import get_logger
from intake_agent.utils.metrics import (
    circuit_breaker_state,
    circuit_breaker_trips,
)

logger = get_logger(__name__)


class MetricsListener(CircuitBreakerListener):
    """Logs state changes and mirrors them into Prometheus."""

    def __init__(self, name: str):
        self.name = name

    def state_change(self, cb: CircuitBreaker, old_state, new_state) -> None:
        old_name = getattr(old_state, "name", old_state)
        new_name = getattr(new_state, "name", new_state)
        if old_name == new_name:
            return
        logger.warning(
            f"Circuit breaker '{self.name}' state changed: {old_name} -> {new_name}"
        )
        circuit_breaker_state.labels(service=self.name).set(
            1 if new_name == "open" else 0
        )
        if new_name == "open":
            circuit_breaker_trips.labels(service=self.name).inc()

    def failure(self, cb: CircuitBreaker, exc: BaseException) -> None:
        logger.debug(
            f"Circuit breaker '{self.name}' recorded failure: {type(exc).__name__}"
        )


def _make_breaker(name: str) -> CircuitBreaker:
    return CircuitBreaker(
        fail_max=CircuitBreakerConfig.FAIL_MAX,
        reset_timeout=CircuitBreakerConfig.RESET_TIMEOUT_SEC,
        listeners=[MetricsListener(name)],
        name=name,
    )


# OpenAI - turn generation
openai_breaker = _make_breaker("openai")

# Google Calendar - appointment booking
calendar_breaker = _make_breaker("calendar")

# Twilio - SMS confirmations
sms_breaker = _make_breaker("sms")


def get_circuit_status() -> dict:
    """Get the status of all circuit breakers."""
    breakers = {
        "openai": openai_breaker,
        "calendar": calendar_breaker,
        "sms": sms_breaker,
    }

    return {
        name: {
            "state": breaker.current_state,
            "fail_count": breaker.fail_counter,
        }
        for name, breaker in breakers.items()
    }

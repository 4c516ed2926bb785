"""Prometheus metrics for the intake agent.

Metrics Categories:
- Conversation: turns, stages reached, turn-generation failures
- Sessions: live sessions and evictions
- Persistence: intake saves and appointment confirmations
- External Services: LLM latency, notification failures, circuit breakers
- Webhooks: Twilio callbacks received
"""

from prometheus_client import Counter, Histogram, Gauge, Info
from intake_agent.config.constants import MetricsConfig

# =============================================================================
# Application Info
# =============================================================================

app_info = Info('intake_agent_app', 'Intake agent application information')
app_info.info({
    'version': '1.0.0',
    'description': 'Telephone patient-intake voice agent'
})

# =============================================================================
# Conversation Metrics
# =============================================================================

conversation_turns = Counter(
    'intake_agent_turns_total',
    'Speech turns processed',
    ['stage']  # stage after the turn
)

turn_generation_failures = Counter(
    'intake_agent_turn_generation_failures_total',
    'Turns answered with the fallback apology',
    ['error_type']
)

llm_latency = Histogram(
    'intake_agent_llm_latency_seconds',
    'Turn generation latency',
    buckets=MetricsConfig.LATENCY_BUCKETS
)

# =============================================================================
# Session Metrics
# =============================================================================

active_sessions = Gauge(
    'intake_agent_active_sessions',
    'Conversation sessions currently held in memory'
)

sessions_created = Counter(
    'intake_agent_sessions_created_total',
    'Conversation sessions created'
)

sessions_evicted = Counter(
    'intake_agent_sessions_evicted_total',
    'Conversation sessions removed',
    ['reason']  # call_ended, idle
)

# =============================================================================
# Persistence Metrics
# =============================================================================

intake_persisted = Counter(
    'intake_agent_intake_persisted_total',
    'Attempts to store a completed intake',
    ['status']  # success, error
)

appointments_confirmed = Counter(
    'intake_agent_appointments_confirmed_total',
    'Appointment confirmation requests',
    ['status']  # success, not_found, error
)

notification_failures = Counter(
    'intake_agent_notification_failures_total',
    'Best-effort notification failures',
    ['channel']  # calendar, sms
)

# =============================================================================
# Resilience Metrics
# =============================================================================

circuit_breaker_state = Gauge(
    'intake_agent_circuit_breaker_open',
    'Circuit breaker state (1=open, 0=closed)',
    ['service']
)

circuit_breaker_trips = Counter(
    'intake_agent_circuit_breaker_trips_total',
    'Times a circuit breaker opened',
    ['service']
)

# =============================================================================
# Webhook Metrics
# =============================================================================

twilio_webhooks = Counter(
    'intake_agent_twilio_webhooks_total',
    'Twilio webhooks received',
    ['webhook_type', 'status']
)

"""Configuration constants for the intake agent.

This module centralizes the magic numbers and fixed tables used
throughout the application.
"""

# ============================================================================
# CONVERSATION CONFIGURATION
# ============================================================================

class ConversationConfig:
    """Conversation flow and interaction settings."""

    SPEECH_MODEL = "phone_call"
    """Twilio speech recognition model for <Gather>"""

    SPEECH_TIMEOUT = "auto"
    """Let Twilio decide when the caller stopped talking"""

    VOICE = "Polly.Joanna"
    """Twilio <Say> voice"""

    FINAL_CALL_STATUSES = frozenset({"completed", "busy", "failed", "no-answer", "canceled"})
    """Twilio CallStatus values after which the session can be dropped"""


# ============================================================================
# EXTRACTION CONFIGURATION
# ============================================================================

class ExtractionConfig:
    """Field extraction tables."""

    # Ordered: the first key found in an utterance wins.
    INSURANCE_PROVIDERS = (
        ("blue cross", "Blue Cross Blue Shield"),
        ("aetna", "Aetna"),
        ("cigna", "Cigna"),
        ("united", "United Healthcare"),
        ("humana", "Humana"),
        ("kaiser", "Kaiser Permanente"),
        ("anthem", "Anthem"),
        ("medicare", "Medicare"),
        ("medicaid", "Medicaid"),
        ("tricare", "Tricare"),
    )
    """Spoken insurer keyword -> canonical provider name, in priority order"""

    MEMBER_ID_MIN_LENGTH = 6
    MEMBER_ID_MAX_LENGTH = 15


# ============================================================================
# LLM CONFIGURATION
# ============================================================================

class LLMConfig:
    """LLM service configuration."""

    TEMPERATURE_MEDIUM = 0.7
    """Temperature for conversational responses"""

    MAX_TOKENS_RESPONSE = 150
    """Max tokens for conversational responses"""


# ============================================================================
# APPOINTMENT CONFIGURATION
# ============================================================================

class AppointmentConfig:
    """Appointment booking settings."""

    DURATION_MINUTES = 60
    """Length of a booked calendar event"""

    CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar.events"]
    """OAuth scopes needed to create calendar events"""

    GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


# ============================================================================
# RETRY CONFIGURATION
# ============================================================================

class RetryConfig:
    """Bounded retry settings for notification senders."""

    MAX_ATTEMPTS = 3
    """Maximum attempts for a calendar or SMS call"""

    BACKOFF_MULTIPLIER = 1
    BACKOFF_MIN_SEC = 1
    BACKOFF_MAX_SEC = 8


# ============================================================================
# CIRCUIT BREAKER CONFIGURATION
# ============================================================================

class CircuitBreakerConfig:
    """Circuit breaker thresholds shared by all external services."""

    FAIL_MAX = 5
    """Consecutive failures before the circuit opens"""

    RESET_TIMEOUT_SEC = 60
    """Seconds before an open circuit lets a trial call through"""


# ============================================================================
# API TIMEOUTS
# ============================================================================

class APITimeouts:
    """Timeout configuration for external API calls."""

    OPENAI_TIMEOUT_SEC = 15
    """Timeout for a single turn generation"""


# ============================================================================
# HEALTH CHECK CONFIGURATION
# ============================================================================

class HealthCheckConfig:
    """Health check settings."""

    DEPENDENCY_CHECK_TIMEOUT_SEC = 5
    """Timeout for individual dependency health checks"""


# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================

class LoggingConfig:
    """Logging configuration."""

    MAX_LOG_TEXT_LENGTH = 100
    """Maximum utterance length for log previews"""


# ============================================================================
# RATE LIMITING CONFIGURATION
# ============================================================================

class RateLimitConfig:
    """Rate limiting settings."""

    API_PER_MINUTE = 30
    """Maximum appointment/patient API calls per minute"""


# ============================================================================
# METRICS CONFIGURATION
# ============================================================================

class MetricsConfig:
    """Metrics and monitoring configuration."""

    LATENCY_BUCKETS = [0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0]
    """Histogram buckets for latency metrics (seconds)"""

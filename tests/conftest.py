"""Pytest configuration and shared fixtures."""
import os

# Settings are read at import time by several modules; provide valid values first.
os.environ.setdefault("TWILIO_ACCOUNT_SID", "AC" + "a" * 32)
os.environ.setdefault("TWILIO_AUTH_TOKEN", "t" * 32)
os.environ.setdefault("TWILIO_PHONE_NUMBER", "+15555555555")
os.environ.setdefault("OPENAI_API_KEY", "sk-" + "k" * 48)
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("USE_REDIS", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("CLINIC_NAME", "Harmony Chiropractic Center")

import pytest
from unittest.mock import MagicMock

from intake_agent.core.memory_session_store import InMemorySessionStore
from intake_agent.core.models import PatientFields
from intake_agent.db.session import build_engine, build_session_factory
from intake_agent.services.persistence_service import PersistenceService
from intake_agent.utils.circuit_breaker import calendar_breaker, openai_breaker, sms_breaker
from tests.fakes import INTAKE_UTTERANCES, FakeRepository, FakeTurnGenerator


@pytest.fixture
def mock_settings():
    """Settings with valid format values and no Google credentials."""
    from intake_agent.config.settings import Settings

    return Settings(
        twilio_account_sid="AC" + "a" * 32,
        twilio_auth_token="t" * 32,
        twilio_phone_number="+15555555555",
        openai_api_key="sk-" + "k" * 48,
        app_env="testing",
        database_url="sqlite://",
        clinic_name="Test Clinic",
    )


@pytest.fixture
def test_call_sid():
    """Test call SID."""
    return "CA1234567890abcdef"


@pytest.fixture
def intake_utterances():
    return list(INTAKE_UTTERANCES)


@pytest.fixture
def complete_fields():
    """Fields of a finished intake."""
    return PatientFields(
        name="John Smith",
        phone="5551234567",
        email="john.smith@example.com",
        date_of_birth="4/5/1990",
        reason="lower back pain",
        insurance={"provider": "Aetna", "member_id": "AB12345"},
    )


@pytest.fixture
def session_store():
    """Fresh in-memory session store for each test."""
    return InMemorySessionStore(idle_timeout_seconds=1800)


@pytest.fixture
def turn_generator():
    return FakeTurnGenerator()


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def persistence():
    """Persistence service over a private in-memory SQLite database."""
    engine = build_engine("sqlite://")
    service = PersistenceService(build_session_factory(engine))
    service.create_tables()
    yield service
    engine.dispose()


@pytest.fixture
def mock_openai_client():
    """Mock synchronous OpenAI client."""
    mock = MagicMock()
    mock.chat.completions.create.return_value = MagicMock(
        choices=[MagicMock(message=MagicMock(content="Test response"))]
    )
    return mock


@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """Circuit breakers are module-level; keep failures from leaking between tests."""
    yield
    for breaker in (openai_breaker, calendar_breaker, sms_breaker):
        breaker.close()

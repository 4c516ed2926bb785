"""Unit tests for PHI redaction."""
import pytest
from unittest.mock import MagicMock

from intake_agent.utils.phi_redactor import PHIRedactor, redact_phi
from intake_agent.utils.structured_logging import log_error, log_utterance


@pytest.mark.unit
class TestPHIRedactor:
    """Test PHI redaction for HIPAA compliance."""

    @pytest.fixture
    def redactor(self):
        """Create a PHI redactor instance."""
        return PHIRedactor()

    def test_redact_phone(self, redactor):
        """Test phone number redaction."""
        text = "Call me at 555-123-4567"
        redacted = redactor.redact(text)

        # Should show last 4 digits
        assert "XXX-XXX-4567" in redacted
        assert "555-123-4567" not in redacted

    def test_redact_phone_formats(self, redactor):
        """Test various phone number formats."""
        formats = [
            "(555) 123-4567",
            "555.123.4567",
            "5551234567",
            "+1-555-123-4567"
        ]

        for phone in formats:
            redacted = redactor.redact(f"Phone: {phone}")
            assert phone not in redacted
            assert "XXX-XXX-4567" in redacted

    def test_redact_email(self, redactor):
        """Test email redaction."""
        redacted = redactor.redact("Email: patient@example.com")

        # Should keep domain
        assert "***@example.com" in redacted
        assert "patient@example.com" not in redacted

    def test_redact_member_id(self, redactor):
        """Test insurance member ID redaction."""
        redacted = redactor.redact("Member ID: ABC123456789")

        assert "ABC123456789" not in redacted
        assert "***789" in redacted

    def test_redact_date(self, redactor):
        """Test date redaction."""
        redacted = redactor.redact("DOB: 01/15/1990")

        # Should keep year, redact month/day
        assert "MM/DD/1990" in redacted
        assert "01/15/1990" not in redacted

    def test_redact_level_full(self, redactor):
        """Test full redaction level."""
        text = "Phone 555-123-4567, email a@example.com, member AB12345, born 4/5/1990"
        redacted = redactor.redact(text, redact_level="full")

        assert redacted == (
            "Phone [REDACTED], email [REDACTED], member [REDACTED], born [REDACTED]"
        )

    def test_redact_empty_string(self, redactor):
        """Test redacting empty string."""
        assert redactor.redact("") == ""
        assert redactor.redact(None) is None

    def test_redact_no_phi(self, redactor):
        """Test text with no PHI."""
        text = "I have lower back pain since last week."
        assert redactor.redact(text) == text

    def test_redact_fields(self, redactor):
        """Sensitive keys are replaced whatever their value."""
        data = {
            "name": "John Doe",
            "phone": "5551234567",
            "insurance_provider": "Aetna",
            "stage": "email",
            "patient_id": 7,
            "email": None,
        }

        redacted = redactor.redact_fields(data)

        assert redacted["name"] == "[REDACTED]"
        assert redacted["phone"] == "[REDACTED]"
        assert redacted["insurance_provider"] == "Aetna"
        assert redacted["stage"] == "email"
        assert redacted["patient_id"] == 7
        assert redacted["email"] is None

    def test_redact_nested_fields(self, redactor):
        """Test nested dictionary redaction."""
        data = {
            "patient_fields": {
                "name": "John Doe",
                "insurance": {"provider": "Aetna", "member_id": "AB12345"},
            },
            "note": "callback 555-123-4567",
        }

        redacted = redactor.redact_fields(data)

        assert redacted["patient_fields"]["name"] == "[REDACTED]"
        assert redacted["patient_fields"]["insurance"]["member_id"] == "[REDACTED]"
        assert redacted["patient_fields"]["insurance"]["provider"] == "Aetna"
        assert redacted["note"] == "callback XXX-XXX-4567"

    def test_is_phi_present(self, redactor):
        """Test PHI detection."""
        assert redactor.is_phi_present("Call me at 555-123-4567") is True
        assert redactor.is_phi_present("my id is AB12345") is True
        assert redactor.is_phi_present("This is a normal sentence.") is False
        assert redactor.is_phi_present("") is False
        assert redactor.is_phi_present(None) is False

    def test_custom_placeholder(self):
        """Test using custom placeholder."""
        redactor = PHIRedactor(placeholder="***")
        redacted = redactor.redact("email a@example.com", redact_level="full")

        assert redacted == "email ***"

    def test_redact_phi_convenience_function(self):
        """Test convenience function."""
        assert redact_phi("555-123-4567") == "XXX-XXX-4567"

    def test_real_world_turn(self, redactor):
        """Test redacting a whole intake utterance."""
        text = (
            "I'm on Blue Cross, member ID ABC123456, phone 555-123-4567, "
            "born 01/15/1990, email john@example.com"
        )

        redacted = redactor.redact(text)

        assert "ABC123456" not in redacted
        assert "XXX-XXX-4567" in redacted
        assert "MM/DD/1990" in redacted
        assert "***@example.com" in redacted
        assert "Blue Cross" in redacted


@pytest.mark.unit
class TestStructuredLogging:
    """Test that log helpers never emit raw PHI."""

    def test_log_utterance_redacts_and_truncates(self):
        logger = MagicMock()

        log_utterance(logger, "my number is 555-123-4567 " + "x" * 200, "CA1", stage="phone")

        message = logger.info.call_args.args[0]
        extra = logger.info.call_args.kwargs["extra"]
        assert "555-123-4567" not in message
        assert "XXX-XXX-4567" in extra["text"]
        assert len(extra["text"]) == 100
        assert extra["call_sid"] == "CA1"
        assert extra["stage"] == "phone"

    def test_log_error_redacts_message(self):
        logger = MagicMock()

        log_error(logger, ValueError("bad email john@example.com"), "Saving intake", call_sid="CA1")

        extra = logger.error.call_args.kwargs["extra"]
        assert extra["error_type"] == "ValueError"
        assert "john@example.com" not in extra["error_message"]
        assert extra["call_sid"] == "CA1"
        assert logger.error.call_args.kwargs["exc_info"] is True

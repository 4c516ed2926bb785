"""PHI (Protected Health Information) redaction for logs.

Callers speak their phone number, email, date of birth and insurance member
ID into the intake line, so raw utterances and field snapshots must never be
logged verbatim. Two entry points:

- ``redact(text)`` scrubs free text by pattern (utterances, replies).
- ``redact_fields(data)`` scrubs a field snapshot by key, then by pattern.
"""
import re
from typing import Any, Dict, Optional, Sequence


SENSITIVE_KEYS = (
    "name", "phone", "email", "date_of_birth", "dob",
    "member_id", "reason", "caller_phone",
)


class PHIRedactor:
    """Redacts Protected Health Information (PHI) from text."""

    def __init__(self, placeholder: str = "[REDACTED]"):
        self.placeholder = placeholder
        self._compile_patterns()

    def _compile_patterns(self) -> None:
        """Compile regex patterns for PHI detection."""
        self.phone_pattern = re.compile(
            r'(?<!\d)(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}(?!\d)'
        )
        self.email_pattern = re.compile(
            r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'
        )
        self.date_pattern = re.compile(
            r'\b\d{1,2}[-/]\d{1,2}[-/](\d{4}|\d{2})\b'
        )
        # Alphanumeric codes with at least one digit and one letter
        self.member_id_pattern = re.compile(
            r'\b(?=[A-Za-z0-9]*\d)(?=[A-Za-z0-9]*[A-Za-z])[A-Za-z0-9]{6,15}\b'
        )

    def redact(self, text: Optional[str], redact_level: str = "partial") -> Optional[str]:
        """Redact PHI from text.

        Args:
            text: Text to redact
            redact_level: "partial" keeps a little context (last phone digits,
                email domain, birth year); "full" replaces everything.

        Returns:
            Redacted text
        """
        if not text:
            return text

        if redact_level == "full":
            redacted = self.email_pattern.sub(self.placeholder, text)
            redacted = self.date_pattern.sub(self.placeholder, redacted)
            redacted = self.phone_pattern.sub(self.placeholder, redacted)
            return self.member_id_pattern.sub(self.placeholder, redacted)

        redacted = self.email_pattern.sub(self._redact_email, text)
        redacted = self.date_pattern.sub(self._redact_date, redacted)
        redacted = self.phone_pattern.sub(self._redact_phone, redacted)
        return self.member_id_pattern.sub(self._redact_member_id, redacted)

    def _redact_phone(self, match) -> str:
        """Keep the last 4 digits, e.g. "XXX-XXX-4567"."""
        digits = re.sub(r'\D', '', match.group(0))
        return "XXX-XXX-" + digits[-4:]

    def _redact_email(self, match) -> str:
        """Keep the domain, e.g. "***@example.com"."""
        return "***@" + match.group(0).split('@', 1)[1]

    def _redact_date(self, match) -> str:
        """Keep the year, e.g. "MM/DD/1990"."""
        return "MM/DD/" + match.group(1)

    def _redact_member_id(self, match) -> str:
        return "***" + match.group(0)[-3:]

    def redact_fields(
        self,
        data: Dict[str, Any],
        sensitive_keys: Sequence[str] = SENSITIVE_KEYS,
        redact_level: str = "partial"
    ) -> Dict[str, Any]:
        """Redact PHI from a (possibly nested) field snapshot.

        Values under sensitive keys are replaced by the placeholder; other
        string values go through pattern redaction.
        """
        redacted: Dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, dict):
                redacted[key] = self.redact_fields(value, sensitive_keys, redact_level)
            elif value is None:
                redacted[key] = None
            elif key.lower() in sensitive_keys:
                redacted[key] = self.placeholder
            elif isinstance(value, str):
                redacted[key] = self.redact(value, redact_level)
            else:
                redacted[key] = value
        return redacted

    def is_phi_present(self, text: Optional[str]) -> bool:
        """Check if text contains potential PHI."""
        if not text:
            return False
        patterns = (
            self.phone_pattern,
            self.email_pattern,
            self.date_pattern,
            self.member_id_pattern,
        )
        return any(pattern.search(text) for pattern in patterns)


# Global singleton instance
_redactor: Optional[PHIRedactor] = None


def get_phi_redactor(placeholder: str = "[REDACTED]") -> PHIRedactor:
    """Get global PHI redactor instance."""
    global _redactor
    if _redactor is None:
        _redactor = PHIRedactor(placeholder)
    return _redactor


def redact_phi(text: Optional[str], level: str = "partial") -> Optional[str]:
    """Convenience function to redact PHI from text."""
    return get_phi_redactor().redact(text, level)

"""Field extraction from caller utterances.

``extract`` is pure: it never mutates the fields it is given and performs no
I/O. Each rule looks at the first match in the utterance only, and only
fills a field that is still empty, so repeated passes over a call can add
information but never change it.
"""
import re
from typing import Optional

from intake_agent.config.constants import ExtractionConfig
from intake_agent.core.models import PatientFields, Stage


PHONE_PATTERN = re.compile(r'\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b')
EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')
DATE_PATTERN = re.compile(r'\b\d{1,2}[/-]\d{1,2}[/-](?:\d{4}|\d{2})\b')
MEMBER_ID_PATTERN = re.compile(
    r'\b(?=[A-Za-z]*\d)[A-Za-z0-9]{%d,%d}\b'
    % (ExtractionConfig.MEMBER_ID_MIN_LENGTH, ExtractionConfig.MEMBER_ID_MAX_LENGTH)
)
MEMBER_ID_CONTEXT = re.compile(r'\b(?:member|id)\b', re.IGNORECASE)

# Stages answered with free text rather than a recognizable pattern
FREE_TEXT_STAGES = {
    Stage.NAME: "name",
    Stage.REASON: "reason",
}


def find_phone(utterance: str) -> Optional[str]:
    """First 10-digit phone number in the utterance, digits only."""
    match = PHONE_PATTERN.search(utterance)
    if not match:
        return None
    return re.sub(r'\D', '', match.group(0))


def find_email(utterance: str) -> Optional[str]:
    match = EMAIL_PATTERN.search(utterance)
    return match.group(0).lower() if match else None


def find_date_of_birth(utterance: str) -> Optional[str]:
    """First date token, but only when the caller is talking about a birth date."""
    if "birth" not in utterance.lower():
        return None
    match = DATE_PATTERN.search(utterance)
    return match.group(0) if match else None


def find_insurance_provider(utterance: str) -> Optional[str]:
    """Map a spoken insurer to its canonical name.

    ExtractionConfig.INSURANCE_PROVIDERS is walked in order and the first
    keyword contained in the utterance wins, so "Cigna, not Aetna" resolves
    to Aetna because Aetna is listed before Cigna.
    """
    lowered = utterance.lower()
    for keyword, provider in ExtractionConfig.INSURANCE_PROVIDERS:
        if keyword in lowered:
            return provider
    return None


def find_member_id(utterance: str) -> Optional[str]:
    """First alphanumeric code (with at least one digit) said alongside "member" or "id"."""
    if not MEMBER_ID_CONTEXT.search(utterance):
        return None
    match = MEMBER_ID_PATTERN.search(utterance)
    return match.group(0).upper() if match else None


def extract(
    utterance: str,
    current: PatientFields,
    prompted_stage: Optional[Stage] = None,
) -> PatientFields:
    """Return ``current`` updated with whatever the utterance reveals.

    Args:
        utterance: Caller speech for this turn
        current: Fields known before this turn (left untouched)
        prompted_stage: Stage the assistant was asking about. Name and
            reason have no recognizable shape, so when one of them was the
            question the whole utterance is taken as the answer.

    Returns:
        A new PatientFields instance
    """
    fields = current.model_copy(deep=True)
    text = (utterance or "").strip()
    if not text:
        return fields

    if not fields.phone:
        fields.phone = find_phone(text)
    if not fields.email:
        fields.email = find_email(text)
    if not fields.date_of_birth:
        fields.date_of_birth = find_date_of_birth(text)
    if not fields.insurance.provider:
        fields.insurance.provider = find_insurance_provider(text)
    if not fields.insurance.member_id:
        fields.insurance.member_id = find_member_id(text)

    free_text_field = FREE_TEXT_STAGES.get(prompted_stage)
    if free_text_field and not getattr(fields, free_text_field):
        setattr(fields, free_text_field, text)

    return fields

"""Data models for the intake agent."""
from typing import Any, Dict, List, Literal, Optional
from datetime import date, datetime, time, timezone
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Stage(str, Enum):
    """Next required intake field, in the order the caller is asked."""
    NAME = "name"
    PHONE = "phone"
    EMAIL = "email"
    DATE_OF_BIRTH = "date_of_birth"
    REASON = "reason"
    INSURANCE_PROVIDER = "insurance_provider"
    INSURANCE_ID = "insurance_id"
    SCHEDULING = "scheduling"


class InsuranceFields(BaseModel):
    """Insurance details collected during a call."""
    provider: Optional[str] = None
    member_id: Optional[str] = None


class PatientFields(BaseModel):
    """Intake fields accumulated over a call.

    Fields are first-write-wins: once set, later turns never change them.
    """
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    date_of_birth: Optional[str] = None
    reason: Optional[str] = None
    insurance: InsuranceFields = Field(default_factory=InsuranceFields)

    def snapshot(self) -> Dict[str, Any]:
        """Flat view of the fields that are already known."""
        flat = {
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "date_of_birth": self.date_of_birth,
            "reason": self.reason,
            "insurance_provider": self.insurance.provider,
            "insurance_member_id": self.insurance.member_id,
        }
        return {key: value for key, value in flat.items() if value}


class Message(BaseModel):
    """One entry of the conversation history."""
    role: Literal["user", "assistant"]
    content: str


class ConversationSession(BaseModel):
    """Per-call conversation state, keyed by the Twilio call SID."""
    call_sid: str
    messages: List[Message] = Field(default_factory=list)
    patient_fields: PatientFields = Field(default_factory=PatientFields)
    stage: Stage = Stage.NAME
    persisted: bool = False
    patient_id: Optional[int] = None
    caller_phone: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    last_activity: datetime = Field(default_factory=utcnow)

    def add_message(self, role: str, content: str) -> None:
        self.messages.append(Message(role=role, content=content))

    def touch(self) -> None:
        self.last_activity = utcnow()


class TurnContext(BaseModel):
    """Ground truth handed to the turn generator on every turn."""
    clinic_name: str
    stage: Stage
    known_fields: Dict[str, Any] = Field(default_factory=dict)
    missing_fields: List[Stage] = Field(default_factory=list)


class AppointmentRecord(BaseModel):
    """A stored appointment plus the contact details needed to notify."""
    id: int
    patient_id: int
    patient_name: Optional[str] = None
    patient_phone: Optional[str] = None
    patient_email: Optional[str] = None
    appointment_date: str
    appointment_time: str
    reason: Optional[str] = None


class CalendarEvent(BaseModel):
    """Reference to a booked calendar event."""
    event_id: str
    html_link: Optional[str] = None


class AppointmentRequest(BaseModel):
    """Body of an appointment confirmation request."""
    model_config = ConfigDict(populate_by_name=True)

    patient_id: int = Field(alias="patientId", gt=0)
    appointment_date: date = Field(alias="date")
    appointment_time: time = Field(alias="time")
    reason: Optional[str] = None


class AppointmentConfirmation(BaseModel):
    """Outcome of a confirmation; notification results are best-effort."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    appointment_id: int = Field(alias="appointmentId")
    calendar_event_link: Optional[str] = Field(default=None, alias="calendarEventLink")
    sms_sent: bool = Field(default=False, alias="smsSent")

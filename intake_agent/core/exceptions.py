"""Error taxonomy for the intake agent."""


class IntakeAgentError(Exception):
    """Base class for errors raised by the intake agent."""


class PatientNotFoundError(IntakeAgentError):
    """A patient id did not match any stored patient."""

    def __init__(self, patient_id: int):
        super().__init__(f"Patient {patient_id} not found")
        self.patient_id = patient_id


class PersistenceError(IntakeAgentError):
    """The relational store rejected or failed a write."""


class NotificationError(IntakeAgentError):
    """A calendar booking or SMS could not be delivered."""

    def __init__(self, channel: str, message: str):
        super().__init__(f"{channel}: {message}")
        self.channel = channel

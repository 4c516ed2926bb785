"""Relational persistence for patients, insurance and appointments.

All methods are blocking (SQLAlchemy ORM); async callers run them through
``asyncio.to_thread``. Each write happens in one transaction that commits
on success and rolls back on any error, and the session is closed on every
exit path.
"""
from datetime import date, time
from typing import Any, Dict, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from intake_agent.core.exceptions import PatientNotFoundError, PersistenceError
from intake_agent.core.models import AppointmentRecord, PatientFields
from intake_agent.db.models import Appointment, Base, Insurance, Patient
from intake_agent.utils.logger import get_logger

logger = get_logger(__name__)


class PersistenceService:
    """Stores finished intakes and appointments."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def create_tables(self) -> None:
        engine = self.session_factory.kw["bind"]
        Base.metadata.create_all(engine)

    def save_intake(self, call_sid: str, fields: PatientFields) -> int:
        """Insert or update the patient for a call, with insurance, atomically.

        Keyed on the unique ``call_sid``, so saving the same call twice
        updates one row instead of creating a duplicate.

        Returns:
            Patient id
        """
        try:
            return self._upsert_intake(call_sid, fields)
        except IntegrityError:
            # Another writer inserted this call first; the retry finds its row
            logger.warning(f"Concurrent insert for call {call_sid}; retrying as update")
            try:
                return self._upsert_intake(call_sid, fields)
            except SQLAlchemyError as e:
                raise PersistenceError(f"Could not store intake for {call_sid}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not store intake for {call_sid}") from e

    def _upsert_intake(self, call_sid: str, fields: PatientFields) -> int:
        with self.session_factory() as session, session.begin():
            patient = session.scalars(
                select(Patient).where(Patient.call_sid == call_sid)
            ).first()
            if patient is None:
                patient = Patient(call_sid=call_sid)
                session.add(patient)

            patient.name = fields.name
            patient.phone = fields.phone
            patient.email = fields.email
            patient.date_of_birth = fields.date_of_birth

            if fields.insurance.provider or fields.insurance.member_id:
                if patient.insurance is None:
                    patient.insurance = Insurance()
                patient.insurance.provider = fields.insurance.provider
                patient.insurance.member_id = fields.insurance.member_id

            session.flush()
            patient_id = patient.id

        logger.info(f"Stored intake for call {call_sid} as patient {patient_id}")
        return patient_id

    def get_patient(self, patient_id: int) -> Optional[Dict[str, Any]]:
        """Patient joined with insurance, or None when unknown."""
        with self.session_factory() as session:
            row = session.execute(
                select(
                    Patient.id,
                    Patient.name,
                    Patient.phone,
                    Patient.email,
                    Patient.date_of_birth,
                    Patient.call_sid,
                    Patient.created_at,
                    Insurance.provider.label("insurance_provider"),
                    Insurance.member_id.label("insurance_member_id"),
                )
                .outerjoin(Insurance, Insurance.patient_id == Patient.id)
                .where(Patient.id == patient_id)
            ).first()

        if row is None:
            return None
        patient = dict(row._mapping)
        if patient["created_at"] is not None:
            patient["created_at"] = patient["created_at"].isoformat()
        return patient

    def create_appointment(
        self,
        patient_id: int,
        appointment_date: date,
        appointment_time: time,
        reason: Optional[str],
    ) -> AppointmentRecord:
        """Insert an appointment row for an existing patient.

        Raises:
            PatientNotFoundError: The patient id is unknown
            PersistenceError: The insert failed and was rolled back
        """
        try:
            with self.session_factory() as session, session.begin():
                patient = session.get(Patient, patient_id)
                if patient is None:
                    raise PatientNotFoundError(patient_id)

                appointment = Appointment(
                    patient_id=patient_id,
                    appointment_date=appointment_date,
                    appointment_time=appointment_time,
                    reason=reason,
                )
                session.add(appointment)
                session.flush()

                record = AppointmentRecord(
                    id=appointment.id,
                    patient_id=patient_id,
                    patient_name=patient.name,
                    patient_phone=patient.phone,
                    patient_email=patient.email,
                    appointment_date=appointment_date.isoformat(),
                    appointment_time=appointment_time.strftime("%H:%M"),
                    reason=reason,
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not create appointment for patient {patient_id}") from e

        logger.info(f"Created appointment {record.id} for patient {patient_id}")
        return record

    def annotate_appointment(self, appointment_id: int, notes: str) -> None:
        """Attach a note (the calendar event reference) to an appointment."""
        try:
            with self.session_factory() as session, session.begin():
                appointment = session.get(Appointment, appointment_id)
                if appointment is not None:
                    appointment.notes = notes
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not annotate appointment {appointment_id}") from e

    def ping(self) -> bool:
        with self.session_factory() as session:
            session.execute(text("SELECT 1"))
        return True

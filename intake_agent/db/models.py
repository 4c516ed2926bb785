"""SQLAlchemy ORM models for patients, insurance and appointments."""
from __future__ import annotations
from typing import Optional, List
from datetime import datetime, date, time

from sqlalchemy import Integer, String, Text, Date, Time, TIMESTAMP, ForeignKey, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Patient(Base):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    email: Mapped[Optional[str]] = mapped_column(Text)
    date_of_birth: Mapped[Optional[str]] = mapped_column(String(16))  # as spoken, e.g. "4/5/1990"
    # one patient row per call
    call_sid: Mapped[Optional[str]] = mapped_column(String(64), unique=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now())

    insurance: Mapped[Optional["Insurance"]] = relationship(
        back_populates="patient", uselist=False, cascade="all, delete-orphan"
    )
    appointments: Mapped[List["Appointment"]] = relationship(back_populates="patient")


class Insurance(Base):
    __tablename__ = "insurance"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id", ondelete="CASCADE"), unique=True)
    provider: Mapped[Optional[str]] = mapped_column(Text)
    member_id: Mapped[Optional[str]] = mapped_column(String(32))

    patient: Mapped[Patient] = relationship(back_populates="insurance")


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"), index=True)
    appointment_date: Mapped[date] = mapped_column(Date)
    appointment_time: Mapped[time] = mapped_column(Time)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)  # calendar event reference
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now())

    patient: Mapped[Patient] = relationship(back_populates="appointments")

"""Availability slots table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    Index,
    MetaData,
    String,
    Table,
    Uuid,
    false,
)

from carebook.models.types import UTCDateTime, utcnow

metadata = MetaData()

availability_slots = Table(
    "availability_slots",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("doctor_id", Uuid, nullable=False, index=True),
    # Doctor-local calendar date and "HH:MM" wall-clock times
    Column("date", Date, nullable=False),
    Column("start_time", String(5), nullable=False),
    Column("end_time", String(5), nullable=False),
    # Absolute instant of date + start_time
    Column("slot_at", UTCDateTime, nullable=False),
    # Booking state
    Column("is_booked", Boolean, nullable=False, default=False, server_default=false()),
    Column("booked_by_patient_id", Uuid, nullable=True),
    # Audit fields
    Column("created_at", UTCDateTime, nullable=False, default=utcnow),
    Column("updated_at", UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow),
    CheckConstraint(
        "(is_booked AND booked_by_patient_id IS NOT NULL)"
        " OR (NOT is_booked AND booked_by_patient_id IS NULL)",
        name="slot_booking_holder_check",
    ),
    Index("ix_availability_slots_doctor_slot_at", "doctor_id", "slot_at"),
)

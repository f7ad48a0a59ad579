"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
)

from carebook.models.types import UTCDateTime, utcnow

metadata = MetaData()

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references
    Column("patient_id", Uuid, nullable=False, index=True),
    Column("doctor_id", Uuid, nullable=False, index=True),
    Column("availability_slot_id", Uuid, nullable=True),
    # Snapshot fields (captured at booking time, never re-synced)
    Column("patient_name", Text, nullable=True),
    Column("patient_email", Text, nullable=True),
    Column("doctor_name", Text, nullable=True),
    Column("doctor_specialty", Text, nullable=True),
    # Appointment details
    Column("appointment_at", UTCDateTime, nullable=False, index=True),
    Column("type", String(20), nullable=False),
    Column("reason_for_visit", Text, nullable=False),
    # Status management
    Column("status", String(20), nullable=False, default="booked", server_default="booked"),
    # Audit fields
    Column("created_at", UTCDateTime, nullable=False, default=utcnow),
    Column("updated_at", UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow),
    Column("cancelled_at", UTCDateTime, nullable=True),
    Column("completed_at", UTCDateTime, nullable=True),
    # Constraints
    CheckConstraint(
        "status IN ('booked', 'cancelled', 'completed')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "type IN ('Online', 'In-Person')",
        name="appointments_type_check",
    ),
)

"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    BOOKED = "booked"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class AppointmentType(str, Enum):
    """How the consultation takes place."""

    ONLINE = "Online"
    IN_PERSON = "In-Person"


class BookingCreate(BaseModel):
    """Schema for reserving an availability slot."""

    slot_id: UUID
    reason_for_visit: str = Field(..., max_length=1000)
    type: AppointmentType

    @field_validator("reason_for_visit")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        """Reason must contain something besides whitespace."""
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("Please provide a reason for your visit")
        return cleaned


class PaymentDetails(BaseModel):
    """Card details for the simulated payment step."""

    card_number: str = ""
    expiry: str = ""
    cvc: str = ""


class BookingConfirm(BookingCreate):
    """Booking request gated behind the payment step."""

    payment: PaymentDetails


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    availability_slot_id: UUID | None = None
    patient_name: str | None = None
    patient_email: str | None = None
    doctor_name: str | None = None
    doctor_specialty: str | None = None
    appointment_at: datetime
    type: AppointmentType
    reason_for_visit: str
    status: AppointmentStatus
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class AppointmentOverviewResponse(BaseModel):
    """Upcoming and past appointments as of the request time."""

    upcoming: list[AppointmentResponse]
    history: list[AppointmentResponse]


class AppointmentsByDateResponse(BaseModel):
    """Appointments partitioned by local calendar date."""

    dates: list[date]
    appointments: dict[str, list[AppointmentResponse]]


class RosterEntry(BaseModel):
    """One distinct patient seen by a doctor."""

    patient_id: UUID
    name: str
    email: str
    initials: str
    first_seen: datetime


class DoctorStats(BaseModel):
    """Monthly booking figures for the doctor dashboard."""

    total_appointments: int
    new_patients: int
    monthly_counts: dict[str, int]


class DoctorDashboardResponse(BaseModel):
    """Doctor landing page data."""

    todays_appointments: list[AppointmentResponse]
    stats: DoctorStats


class NextAppointment(AppointmentResponse):
    """Upcoming appointment with a join hint for online visits."""

    is_joinable: bool


class PatientDashboardResponse(BaseModel):
    """Patient landing page data."""

    next_appointments: list[NextAppointment]

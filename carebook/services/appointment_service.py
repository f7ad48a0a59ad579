"""Appointment read side: loads rows and derives the projections."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.config import Settings, settings
from carebook.core.exceptions import BookingStoreError
from carebook.models.appointments import appointments
from carebook.models.availability_slots import availability_slots
from carebook.schemas.appointments import (
    AppointmentOverviewResponse,
    AppointmentResponse,
    AppointmentsByDateResponse,
    DoctorDashboardResponse,
    DoctorStats,
    NextAppointment,
    PatientDashboardResponse,
    RosterEntry,
)
from carebook.schemas.availability import AvailabilitySlotResponse, SlotsByDateResponse
from carebook.services import projections

Role = Literal["patient", "doctor"]


def _appointments(rows: list) -> list[AppointmentResponse]:
    return [AppointmentResponse.model_validate(dict(row)) for row in rows]


def slots_by_date_response(grouped: dict[str, list]) -> SlotsByDateResponse:
    """Wrap a date -> slots mapping in its response schema."""
    return SlotsByDateResponse(
        dates=list(grouped),
        slots={
            day: [AvailabilitySlotResponse.model_validate(dict(slot)) for slot in slots]
            for day, slots in grouped.items()
        },
    )


class AppointmentService:
    """Service for appointment and availability views."""

    def __init__(self, db: AsyncSession, config: Settings | None = None):
        """Initialize service with database session."""
        self.db = db
        self.config = config or settings

    async def _fetch(self, stmt) -> list[dict]:
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise BookingStoreError() from e
        return [dict(row) for row in result.mappings().all()]

    async def list_appointments(self, user_id: UUID, role: Role) -> list[dict]:
        """All appointments where the user is the patient or the doctor."""
        column = appointments.c.doctor_id if role == "doctor" else appointments.c.patient_id
        stmt = select(appointments).where(column == user_id).order_by(appointments.c.appointment_at)
        return await self._fetch(stmt)

    async def overview(self, user_id: UUID, role: Role, now: datetime) -> AppointmentOverviewResponse:
        """
        Split a user's appointments into upcoming and history.

        Args:
            user_id: Patient or doctor ID
            role: Which side of the appointment the user is on
            now: Evaluation time

        Returns:
            Upcoming (soonest first) and history (newest first)
        """
        rows = await self.list_appointments(user_id, role)
        return AppointmentOverviewResponse(
            upcoming=_appointments(projections.upcoming(rows, now)),
            history=_appointments(projections.history(rows, now)),
        )

    async def by_date(self, user_id: UUID, role: Role) -> AppointmentsByDateResponse:
        """Appointments grouped by local calendar date."""
        rows = await self.list_appointments(user_id, role)
        grouped = projections.group_appointments_by_date(rows, self.config.clinic_tz)
        return AppointmentsByDateResponse(
            dates=list(grouped),
            appointments={day: _appointments(items) for day, items in grouped.items()},
        )

    async def patient_roster(self, doctor_id: UUID) -> list[RosterEntry]:
        """Distinct patients a doctor has seen, with first-seen times."""
        rows = await self.list_appointments(doctor_id, "doctor")
        return [RosterEntry(**entry) for entry in projections.patient_roster(rows)]

    async def doctor_dashboard(self, doctor_id: UUID, now: datetime) -> DoctorDashboardResponse:
        """Today's appointments plus monthly figures."""
        rows = await self.list_appointments(doctor_id, "doctor")
        tz = self.config.clinic_tz
        return DoctorDashboardResponse(
            todays_appointments=_appointments(projections.todays_appointments(rows, now, tz)),
            stats=DoctorStats(**projections.doctor_stats(rows, now, tz)),
        )

    async def patient_dashboard(self, patient_id: UUID, now: datetime) -> PatientDashboardResponse:
        """The patient's next appointments with join hints."""
        rows = await self.list_appointments(patient_id, "patient")
        return PatientDashboardResponse(
            next_appointments=[
                NextAppointment.model_validate(item)
                for item in projections.next_appointments(rows, now)
            ]
        )

    async def bookable_slots(self, doctor_id: UUID, now: datetime) -> SlotsByDateResponse:
        """A doctor's free future slots, grouped by date."""
        stmt = select(availability_slots).where(availability_slots.c.doctor_id == doctor_id)
        rows = await self._fetch(stmt)
        return slots_by_date_response(projections.bookable_slots(rows, now))

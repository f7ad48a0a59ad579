"""Appointment endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, status

from carebook.core.exceptions import AppointmentNotPast, ForbiddenException
from carebook.dependencies import CurrentDoctor, CurrentUser, DatabaseSession, Now
from carebook.schemas.appointments import (
    AppointmentOverviewResponse,
    AppointmentResponse,
    AppointmentsByDateResponse,
)
from carebook.services.appointment_service import AppointmentService
from carebook.services.booking_service import BookingService

router = APIRouter()


def _is_party(appointment: dict[str, Any], user: dict[str, Any]) -> bool:
    """Whether the caller is the appointment's patient or doctor."""
    owner_field = "doctor_id" if user["role"] == "doctor" else "patient_id"
    return appointment[owner_field] == user["id"]


@router.get(
    "/me",
    response_model=AppointmentOverviewResponse,
    status_code=status.HTTP_200_OK,
    summary="Upcoming and past appointments",
)
async def list_my_appointments(
    current_user: CurrentUser,
    db: DatabaseSession,
    now: Now,
) -> AppointmentOverviewResponse:
    """
    List the caller's appointments split at the current time.

    Upcoming holds booked appointments from now on, soonest first; history
    holds the rest, newest first.
    """
    service = AppointmentService(db)
    return await service.overview(current_user["id"], current_user["role"], now)


@router.get(
    "/me/by-date",
    response_model=AppointmentsByDateResponse,
    status_code=status.HTTP_200_OK,
    summary="Appointments grouped by date",
)
async def list_my_appointments_by_date(
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentsByDateResponse:
    """Appointments keyed by calendar date, for calendar highlighting."""
    service = AppointmentService(db)
    return await service.by_date(current_user["id"], current_user["role"])


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        AppointmentNotFound: If the appointment does not exist
        ForbiddenException: If the caller is not a party to it
    """
    appointment = await BookingService(db).get_appointment(appointment_id)
    if not _is_party(appointment, current_user):
        raise ForbiddenException("Access denied to this appointment")
    return AppointmentResponse.model_validate(appointment)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Cancel a booked appointment and free its slot.

    Either the patient or the doctor on the appointment may cancel.
    """
    service = BookingService(db)
    appointment = await service.get_appointment(appointment_id)
    if not _is_party(appointment, current_user):
        raise ForbiddenException("Access denied to this appointment")

    return await service.release(appointment_id, appointment["availability_slot_id"])


@router.post(
    "/{appointment_id}/complete",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark appointment as completed",
)
async def complete_appointment(
    appointment_id: UUID,
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
    now: Now,
) -> AppointmentResponse:
    """
    Mark a past appointment as completed.

    Only the appointment's doctor may do this, and only once the appointment
    time has passed.
    """
    service = BookingService(db)
    appointment = await service.get_appointment(appointment_id)
    if not _is_party(appointment, current_doctor):
        raise ForbiddenException("Access denied to this appointment")
    if appointment["appointment_at"] >= now:
        raise AppointmentNotPast()

    return await service.finalize(appointment_id)

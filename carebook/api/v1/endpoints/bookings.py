"""Booking endpoints (patient side)."""

from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.dependencies import CurrentPatient, DatabaseSession, Now, PaymentProcessor
from carebook.schemas.appointments import AppointmentResponse, BookingConfirm, BookingCreate
from carebook.services.booking_service import BookingService
from carebook.services.doctor_service import get_patient_by_id

router = APIRouter()


async def _patient_snapshot(db: AsyncSession, patient_id: UUID) -> dict:
    """Display fields copied onto the appointment at booking time."""
    patient = await get_patient_by_id(db, patient_id)
    if not patient:
        return {"patient_name": None, "patient_email": None}
    return {"patient_name": patient["display_name"], "patient_email": patient["email"]}


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reserve a slot",
)
async def reserve_slot(
    data: BookingCreate,
    current_patient: CurrentPatient,
    db: DatabaseSession,
    now: Now,
) -> AppointmentResponse:
    """
    Reserve an availability slot for the authenticated patient.

    - **slot_id**: Slot to reserve
    - **reason_for_visit**: Why the patient is coming in
    - **type**: `Online` or `In-Person`

    Returns 409 if someone else got the slot first or the slot has already started.
    """
    snapshot = await _patient_snapshot(db, current_patient["id"])
    service = BookingService(db)
    return await service.reserve(current_patient["id"], data, now=now, **snapshot)


@router.post(
    "/confirm",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Pay and reserve a slot",
)
async def confirm_booking(
    data: BookingConfirm,
    current_patient: CurrentPatient,
    db: DatabaseSession,
    processor: PaymentProcessor,
    now: Now,
) -> AppointmentResponse:
    """
    Take the consultation payment, then reserve the slot.

    A rejected payment returns 402 and nothing is booked.
    """
    snapshot = await _patient_snapshot(db, current_patient["id"])
    service = BookingService(db)
    return await service.confirm_booking(
        current_patient["id"], data, processor, now=now, **snapshot
    )

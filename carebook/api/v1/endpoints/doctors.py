"""Doctor endpoints: public profile, bookable slots and doctor views."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from carebook.core.exceptions import NotFoundException
from carebook.dependencies import CacheManagerDep, CurrentDoctor, DatabaseSession, Now
from carebook.schemas.appointments import DoctorDashboardResponse, RosterEntry
from carebook.schemas.availability import SlotsByDateResponse
from carebook.schemas.doctors import DoctorResponse
from carebook.services.appointment_service import AppointmentService
from carebook.services.doctor_service import DoctorService

router = APIRouter()


def get_doctor_service(cache_manager: CacheManagerDep) -> DoctorService:
    """Get doctor service instance."""
    return DoctorService(cache_manager=cache_manager)


# ============================================================================
# Doctor-side views
# ============================================================================


@router.get(
    "/me/patients",
    response_model=list[RosterEntry],
    status_code=status.HTTP_200_OK,
    summary="Patient roster",
)
async def get_patient_roster(
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
) -> list[RosterEntry]:
    """Every patient who has booked with the doctor, with first-seen time."""
    service = AppointmentService(db)
    return await service.patient_roster(current_doctor["id"])


@router.get(
    "/me/dashboard",
    response_model=DoctorDashboardResponse,
    status_code=status.HTTP_200_OK,
    summary="Doctor dashboard",
)
async def get_doctor_dashboard(
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
    now: Now,
) -> DoctorDashboardResponse:
    """Today's appointments and monthly booking figures."""
    service = AppointmentService(db)
    return await service.doctor_dashboard(current_doctor["id"], now)


# ============================================================================
# Public doctor endpoints
# ============================================================================


@router.get(
    "/{doctor_id}",
    response_model=DoctorResponse,
    status_code=status.HTTP_200_OK,
    summary="Get doctor profile",
)
async def get_doctor(
    doctor_id: UUID,
    db: DatabaseSession,
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    """Get a doctor's public profile."""
    doctor = await doctor_service.get_doctor_by_id(db, doctor_id)
    if not doctor:
        raise NotFoundException("Doctor not found.")
    return doctor


@router.get(
    "/{doctor_id}/slots",
    response_model=SlotsByDateResponse,
    status_code=status.HTTP_200_OK,
    summary="Bookable slots",
)
async def get_bookable_slots(
    doctor_id: UUID,
    db: DatabaseSession,
    now: Now,
) -> SlotsByDateResponse:
    """
    Free slots that start after now, grouped by date.

    The ``dates`` list drives which days are selectable in the booking
    calendar.
    """
    service = AppointmentService(db)
    return await service.bookable_slots(doctor_id, now)

"""Patient endpoints."""

from fastapi import APIRouter, status

from carebook.dependencies import CurrentPatient, DatabaseSession, Now
from carebook.schemas.appointments import PatientDashboardResponse
from carebook.services.appointment_service import AppointmentService

router = APIRouter()


@router.get(
    "/me/dashboard",
    response_model=PatientDashboardResponse,
    status_code=status.HTTP_200_OK,
    summary="Patient dashboard",
)
async def get_patient_dashboard(
    current_patient: CurrentPatient,
    db: DatabaseSession,
    now: Now,
) -> PatientDashboardResponse:
    """The patient's next five appointments; online ones show when they can be joined."""
    service = AppointmentService(db)
    return await service.patient_dashboard(current_patient["id"], now)

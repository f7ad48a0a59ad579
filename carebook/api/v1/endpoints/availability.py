"""Availability endpoints (doctor side)."""

from uuid import UUID

from fastapi import APIRouter, status

from carebook.dependencies import CurrentDoctor, DatabaseSession, Now
from carebook.schemas.availability import (
    AvailabilityPublish,
    AvailabilityPublishResponse,
    SlotsByDateResponse,
)
from carebook.services import projections
from carebook.services.appointment_service import slots_by_date_response
from carebook.services.availability_service import AvailabilityService

router = APIRouter()


@router.post(
    "/",
    response_model=AvailabilityPublishResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish availability",
)
async def publish_availability(
    data: AvailabilityPublish,
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
    now: Now,
) -> AvailabilityPublishResponse:
    """
    Create one 30-minute slot for every selected date and time.

    - **dates**: Calendar dates to open, today or later
    - **times**: Start times from the half-hour catalog

    Slots are written one by one; a failure part-way keeps the slots that
    were already created and reports their ids.
    """
    service = AvailabilityService(db)
    created = await service.publish(current_doctor["id"], data, now)
    return AvailabilityPublishResponse(created=len(created), items=created)


@router.get(
    "/me",
    response_model=SlotsByDateResponse,
    status_code=status.HTTP_200_OK,
    summary="List own availability",
)
async def list_my_availability(
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
) -> SlotsByDateResponse:
    """All of the doctor's slots, booked and free, grouped by date."""
    service = AvailabilityService(db)
    slots = await service.list_slots(current_doctor["id"])
    return slots_by_date_response(projections.group_slots_by_date(slots))


@router.delete(
    "/{slot_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove availability slot",
)
async def delete_availability_slot(
    slot_id: UUID,
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
) -> None:
    """
    Remove one of the doctor's unbooked slots.

    Booked slots are rejected with 409 and left unchanged.
    """
    service = AvailabilityService(db)
    await service.delete_slot(current_doctor["id"], slot_id)

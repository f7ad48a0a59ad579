"""Availability publisher: doctor-side slot creation and removal."""

from datetime import date, datetime, time, timedelta
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.config import Settings, settings
from carebook.core.exceptions import (
    AvailabilityPublishError,
    BookingStoreError,
    ForbiddenException,
    SlotInUse,
    SlotNotFound,
    ValidationException,
)
from carebook.models.availability_slots import availability_slots
from carebook.models.types import utcnow
from carebook.schemas.availability import AvailabilityPublish, AvailabilitySlotResponse

logger = structlog.get_logger()


def build_slot_values(
    doctor_id: UUID,
    day: date,
    start: str,
    duration_minutes: int,
    tz: ZoneInfo,
) -> dict[str, Any]:
    """Column values for one unbooked slot starting at ``start`` on ``day``."""
    hours, minutes = (int(part) for part in start.split(":"))
    starts_at = datetime.combine(day, time(hours, minutes), tzinfo=tz)
    ends_at = starts_at + timedelta(minutes=duration_minutes)

    return {
        "doctor_id": doctor_id,
        "date": day,
        "start_time": starts_at.strftime("%H:%M"),
        "end_time": ends_at.strftime("%H:%M"),
        "slot_at": starts_at,
        "is_booked": False,
        "booked_by_patient_id": None,
    }


class AvailabilityService:
    """Service for publishing and removing availability slots."""

    def __init__(self, db: AsyncSession, config: Settings | None = None):
        """Initialize service with database session."""
        self.db = db
        self.config = config or settings

    async def publish(
        self,
        doctor_id: UUID,
        data: AvailabilityPublish,
        now: datetime | None = None,
    ) -> list[AvailabilitySlotResponse]:
        """
        Create one slot per (date x time) pair.

        Each slot is its own write. If one fails the batch stops; slots that
        were already created stay in place and their ids are reported.

        Args:
            doctor_id: Publishing doctor
            data: Dates and catalog times
            now: Evaluation time; dates before its local day are refused

        Returns:
            Created slots in publish order

        Raises:
            ValidationException: If any date lies before today
            AvailabilityPublishError: If any write fails
        """
        tz = self.config.clinic_tz
        today = (now or utcnow()).astimezone(tz).date()
        past = [day for day in data.dates if day < today]
        if past:
            raise ValidationException(
                "Cannot publish availability for past dates: "
                + ", ".join(day.isoformat() for day in past)
            )

        created: list[AvailabilitySlotResponse] = []

        for day in data.dates:
            for start in data.times:
                values = build_slot_values(
                    doctor_id, day, start, self.config.slot_duration_minutes, tz
                )
                try:
                    stmt = insert(availability_slots).values(**values).returning(availability_slots)
                    row = (await self.db.execute(stmt)).mappings().one()
                    await self.db.commit()
                except SQLAlchemyError as e:
                    await self.db.rollback()
                    created_ids = [slot.id for slot in created]
                    logger.error(
                        "availability_publish_partial_failure",
                        doctor_id=str(doctor_id),
                        created=len(created_ids),
                        failed_date=day.isoformat(),
                        failed_time=start,
                        error=str(e),
                    )
                    raise AvailabilityPublishError(created_ids) from e

                created.append(AvailabilitySlotResponse.model_validate(dict(row)))

        logger.info("availability_published", doctor_id=str(doctor_id), created=len(created))
        return created

    async def delete_slot(self, doctor_id: UUID, slot_id: UUID) -> None:
        """
        Remove an unbooked slot owned by the doctor.

        Raises:
            SlotNotFound: If the slot does not exist
            ForbiddenException: If the slot belongs to another doctor
            SlotInUse: If the slot is booked
        """
        try:
            stmt = (
                delete(availability_slots)
                .where(
                    availability_slots.c.id == slot_id,
                    availability_slots.c.doctor_id == doctor_id,
                    availability_slots.c.is_booked.is_(False),
                )
                .returning(availability_slots.c.id)
            )
            deleted = (await self.db.execute(stmt)).first()

            if deleted is None:
                await self.db.rollback()
                lookup = select(
                    availability_slots.c.doctor_id, availability_slots.c.is_booked
                ).where(availability_slots.c.id == slot_id)
                slot = (await self.db.execute(lookup)).mappings().first()
                await self.db.rollback()

                if slot is None:
                    raise SlotNotFound()
                if slot["doctor_id"] != doctor_id:
                    raise ForbiddenException("You can only remove your own availability")
                raise SlotInUse()

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("availability_delete_failed", slot_id=str(slot_id), error=str(e))
            raise BookingStoreError() from e

        logger.info("availability_slot_deleted", doctor_id=str(doctor_id), slot_id=str(slot_id))

    async def list_slots(self, doctor_id: UUID) -> list[dict]:
        """All of a doctor's slots, booked or not, in chronological order."""
        stmt = (
            select(availability_slots)
            .where(availability_slots.c.doctor_id == doctor_id)
            .order_by(availability_slots.c.date, availability_slots.c.start_time)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise BookingStoreError() from e

        return [dict(row) for row in result.mappings().all()]

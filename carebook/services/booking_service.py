"""Booking engine: reserve, release and finalize appointments.

Every operation is a single transaction over the slot and appointment it
touches. Mutual exclusion comes from conditional UPDATEs (compare-and-swap on
``is_booked`` / ``status``): of two concurrent writers only one sees its
predicate hold, the other gets zero rows back and aborts.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.config import Settings, settings
from carebook.core.exceptions import (
    AppointmentNotActive,
    AppointmentNotFound,
    BookingStoreError,
    MissingSlotReference,
    SlotNotFound,
    SlotUnavailable,
)
from carebook.models.appointments import appointments
from carebook.models.availability_slots import availability_slots
from carebook.models.doctors import doctors
from carebook.models.types import utcnow
from carebook.schemas.appointments import (
    AppointmentResponse,
    AppointmentStatus,
    BookingConfirm,
    BookingCreate,
)
from carebook.services.payment_service import SimulatedPaymentProcessor

logger = structlog.get_logger()


class BookingService:
    """Service for the appointment lifecycle."""

    def __init__(self, db: AsyncSession, config: Settings | None = None):
        """Initialize service with database session."""
        self.db = db
        self.config = config or settings

    async def reserve(
        self,
        patient_id: UUID,
        data: BookingCreate,
        patient_name: str | None = None,
        patient_email: str | None = None,
        now: datetime | None = None,
    ) -> AppointmentResponse:
        """
        Reserve a slot and create its appointment in one transaction.

        Args:
            patient_id: Patient making the booking
            data: Slot, reason and consultation type
            patient_name: Display name snapshot
            patient_email: Email snapshot
            now: Evaluation time; slots starting at or before it cannot be taken

        Returns:
            Created appointment

        Raises:
            SlotUnavailable: If the slot is booked, already started or does not exist
            BookingStoreError: If the store fails; nothing is written
        """
        now = now or utcnow()
        try:
            claim = (
                update(availability_slots)
                .where(
                    availability_slots.c.id == data.slot_id,
                    availability_slots.c.is_booked.is_(False),
                    availability_slots.c.slot_at > now,
                )
                .values(is_booked=True, booked_by_patient_id=patient_id)
                .returning(availability_slots)
            )
            slot = (await self.db.execute(claim)).mappings().first()

            if slot is None:
                await self.db.rollback()
                logger.info(
                    "slot_reservation_conflict",
                    slot_id=str(data.slot_id),
                    patient_id=str(patient_id),
                )
                raise SlotUnavailable()

            doctor_query = select(doctors.c.name, doctors.c.specialty).where(
                doctors.c.id == slot["doctor_id"]
            )
            doctor = (await self.db.execute(doctor_query)).mappings().first()

            values = {
                "patient_id": patient_id,
                "doctor_id": slot["doctor_id"],
                "availability_slot_id": slot["id"],
                "patient_name": patient_name,
                "patient_email": patient_email,
                "doctor_name": doctor["name"] if doctor else None,
                "doctor_specialty": doctor["specialty"] if doctor else None,
                "appointment_at": slot["slot_at"],
                "type": data.type.value,
                "reason_for_visit": data.reason_for_visit,
                "status": AppointmentStatus.BOOKED.value,
            }
            stmt = insert(appointments).values(**values).returning(appointments)
            row = (await self.db.execute(stmt)).mappings().one()

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("slot_reservation_failed", slot_id=str(data.slot_id), error=str(e))
            raise BookingStoreError() from e

        logger.info(
            "slot_reserved",
            slot_id=str(data.slot_id),
            appointment_id=str(row["id"]),
            patient_id=str(patient_id),
        )
        return AppointmentResponse.model_validate(dict(row))

    async def confirm_booking(
        self,
        patient_id: UUID,
        data: BookingConfirm,
        processor: SimulatedPaymentProcessor,
        patient_name: str | None = None,
        patient_email: str | None = None,
        now: datetime | None = None,
    ) -> AppointmentResponse:
        """
        Run the payment gate, then reserve.

        A failed payment raises before anything is written, so there is
        nothing to compensate.
        """
        now = now or utcnow()
        amount = await self._consultation_fee(data.slot_id, now)
        await processor.charge(amount, data.payment)
        return await self.reserve(patient_id, data, patient_name, patient_email, now)

    async def release(
        self,
        appointment_id: UUID,
        availability_slot_id: UUID | None,
    ) -> AppointmentResponse:
        """
        Cancel a booked appointment and free its slot in one transaction.

        The appointment status is re-checked inside the transaction, so a
        second concurrent release (or a release racing a finalize) aborts
        instead of freeing a slot that may have been re-booked since.

        Args:
            appointment_id: Appointment to cancel
            availability_slot_id: Slot held by the appointment

        Returns:
            Cancelled appointment

        Raises:
            MissingSlotReference: If no slot id is given
            AppointmentNotFound: If the appointment does not exist
            AppointmentNotActive: If it is already cancelled or completed
            SlotNotFound: If the slot was deleted or is not held by the
                appointment's patient; the appointment stays booked
            BookingStoreError: If the store fails
        """
        if availability_slot_id is None:
            raise MissingSlotReference()

        try:
            now = utcnow()
            cancel = (
                update(appointments)
                .where(
                    appointments.c.id == appointment_id,
                    appointments.c.status == AppointmentStatus.BOOKED.value,
                )
                .values(status=AppointmentStatus.CANCELLED.value, cancelled_at=now)
                .returning(appointments)
            )
            row = (await self.db.execute(cancel)).mappings().first()

            if row is None:
                await self.db.rollback()
                raise await self._not_booked_error(appointment_id)

            free_slot = (
                update(availability_slots)
                .where(
                    availability_slots.c.id == availability_slot_id,
                    availability_slots.c.booked_by_patient_id == row["patient_id"],
                )
                .values(is_booked=False, booked_by_patient_id=None)
                .returning(availability_slots.c.id)
            )
            released = (await self.db.execute(free_slot)).first()

            if released is None:
                if not self.config.release_orphaned_appointments:
                    await self.db.rollback()
                    logger.warning(
                        "appointment_cancel_slot_missing",
                        appointment_id=str(appointment_id),
                        slot_id=str(availability_slot_id),
                    )
                    raise SlotNotFound()
                logger.warning(
                    "appointment_cancelled_without_slot",
                    appointment_id=str(appointment_id),
                    slot_id=str(availability_slot_id),
                )

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("appointment_cancel_failed", appointment_id=str(appointment_id), error=str(e))
            raise BookingStoreError() from e

        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            slot_id=str(availability_slot_id),
        )
        return AppointmentResponse.model_validate(dict(row))

    async def finalize(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Mark a booked appointment as completed.

        The slot is left booked; the historical linkage stays inert. Checking
        that the appointment lies in the past is the caller's job.

        Raises:
            AppointmentNotFound: If the appointment does not exist
            AppointmentNotActive: If it is already cancelled or completed
            BookingStoreError: If the store fails
        """
        try:
            complete = (
                update(appointments)
                .where(
                    appointments.c.id == appointment_id,
                    appointments.c.status == AppointmentStatus.BOOKED.value,
                )
                .values(status=AppointmentStatus.COMPLETED.value, completed_at=utcnow())
                .returning(appointments)
            )
            row = (await self.db.execute(complete)).mappings().first()

            if row is None:
                await self.db.rollback()
                raise await self._not_booked_error(appointment_id)

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("appointment_complete_failed", appointment_id=str(appointment_id), error=str(e))
            raise BookingStoreError() from e

        logger.info("appointment_completed", appointment_id=str(appointment_id))
        return AppointmentResponse.model_validate(dict(row))

    async def get_appointment(self, appointment_id: UUID) -> dict[str, Any]:
        """
        Get appointment by ID.

        Raises:
            AppointmentNotFound: If appointment not found
        """
        try:
            stmt = select(appointments).where(appointments.c.id == appointment_id)
            row = (await self.db.execute(stmt)).mappings().first()
        except SQLAlchemyError as e:
            raise BookingStoreError() from e

        if not row:
            raise AppointmentNotFound()

        return dict(row)

    async def _not_booked_error(
        self, appointment_id: UUID
    ) -> AppointmentNotFound | AppointmentNotActive:
        """Work out why a booked-only update matched nothing."""
        stmt = select(appointments.c.status).where(appointments.c.id == appointment_id)
        current = (await self.db.execute(stmt)).scalar_one_or_none()
        await self.db.rollback()

        if current is None:
            return AppointmentNotFound()

        logger.info(
            "appointment_transition_rejected",
            appointment_id=str(appointment_id),
            status=current,
        )
        return AppointmentNotActive(current)

    async def _consultation_fee(self, slot_id: UUID, now: datetime) -> Decimal:
        """Fee for the slot's doctor; slots that cannot be reserved fail before payment."""
        try:
            stmt = (
                select(
                    availability_slots.c.is_booked,
                    availability_slots.c.slot_at,
                    doctors.c.consultation_fee,
                )
                .select_from(availability_slots)
                .outerjoin(doctors, doctors.c.id == availability_slots.c.doctor_id)
                .where(availability_slots.c.id == slot_id)
            )
            row = (await self.db.execute(stmt)).mappings().first()
            await self.db.rollback()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BookingStoreError() from e

        if row is None or row["is_booked"] or row["slot_at"] <= now:
            raise SlotUnavailable()

        return row["consultation_fee"] or Decimal("0")

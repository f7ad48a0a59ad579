"""Tests for the booking engine transactions."""

import asyncio
from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import OperationalError

from carebook.config import settings
from carebook.core.exceptions import (
    AppointmentNotActive,
    AppointmentNotFound,
    BookingStoreError,
    MissingSlotReference,
    PaymentFailed,
    SlotNotFound,
    SlotUnavailable,
)
from carebook.models.appointments import appointments
from carebook.models.availability_slots import availability_slots
from carebook.schemas.appointments import (
    AppointmentStatus,
    AppointmentType,
    BookingConfirm,
    BookingCreate,
    PaymentDetails,
)
from carebook.services.booking_service import BookingService
from carebook.services.payment_service import SimulatedPaymentProcessor

NOW = datetime(2024, 7, 1, 8, 0, tzinfo=UTC)


def booking(slot_id, reason="checkup", kind=AppointmentType.ONLINE) -> BookingCreate:
    return BookingCreate(slot_id=slot_id, reason_for_visit=reason, type=kind)


async def fetch_slot(session_factory, slot_id) -> dict:
    async with session_factory() as session:
        stmt = select(availability_slots).where(availability_slots.c.id == slot_id)
        return dict((await session.execute(stmt)).mappings().one())


async def fetch_appointment(session_factory, appointment_id) -> dict:
    async with session_factory() as session:
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        return dict((await session.execute(stmt)).mappings().one())


async def count_appointments(session_factory) -> int:
    async with session_factory() as session:
        stmt = select(func.count()).select_from(appointments)
        return (await session.execute(stmt)).scalar_one()


# ============================================================================
# Reserve
# ============================================================================


@pytest.mark.asyncio
async def test_reserve_books_slot_and_creates_appointment(
    db, session_factory, make_slot, patient_a, doctor_id
):
    """Reserve writes the slot claim and the appointment together."""
    slot_id = await make_slot()

    appointment = await BookingService(db).reserve(
        patient_a,
        booking(slot_id),
        patient_name="Alice Walker",
        patient_email="alice@example.com",
        now=NOW,
    )

    assert appointment.status == AppointmentStatus.BOOKED
    assert appointment.appointment_at == datetime(2024, 7, 12, 9, 0, tzinfo=UTC)
    assert appointment.availability_slot_id == slot_id
    assert appointment.doctor_id == doctor_id
    assert appointment.patient_name == "Alice Walker"
    assert appointment.doctor_name == "Dr. Jane Smith"
    assert appointment.doctor_specialty == "Cardiology"

    slot = await fetch_slot(session_factory, slot_id)
    assert slot["is_booked"] is True
    assert slot["booked_by_patient_id"] == patient_a


@pytest.mark.asyncio
async def test_reserve_already_booked_slot_is_rejected(
    db, session_factory, make_slot, patient_a, patient_b
):
    """A second reserve on a booked slot fails and writes nothing."""
    slot_id = await make_slot()
    await BookingService(db).reserve(patient_a, booking(slot_id), now=NOW)

    with pytest.raises(SlotUnavailable):
        await BookingService(db).reserve(patient_b, booking(slot_id), now=NOW)

    assert await count_appointments(session_factory) == 1
    slot = await fetch_slot(session_factory, slot_id)
    assert slot["booked_by_patient_id"] == patient_a


@pytest.mark.asyncio
async def test_reserve_missing_slot_is_unavailable(db, session_factory, patient_a):
    """Reserving a slot that does not exist is a SlotUnavailable, not a crash."""
    with pytest.raises(SlotUnavailable):
        await BookingService(db).reserve(patient_a, booking(uuid4()), now=NOW)

    assert await count_appointments(session_factory) == 0


@pytest.mark.asyncio
async def test_concurrent_reserves_have_exactly_one_winner(
    session_factory, make_slot, doctor_id
):
    """Of several simultaneous reserves on one slot, exactly one commits."""
    slot_id = await make_slot()
    patient_ids = [uuid4() for _ in range(5)]

    async def attempt(patient_id):
        async with session_factory() as session:
            return await BookingService(session).reserve(patient_id, booking(slot_id), now=NOW)

    results = await asyncio.gather(*(attempt(p) for p in patient_ids), return_exceptions=True)

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 4
    assert all(isinstance(e, SlotUnavailable) for e in losers)

    assert await count_appointments(session_factory) == 1
    slot = await fetch_slot(session_factory, slot_id)
    assert slot["is_booked"] is True
    assert slot["booked_by_patient_id"] == winners[0].patient_id


@pytest.mark.asyncio
async def test_reserve_past_slot_is_unavailable(db, session_factory, make_slot, patient_a):
    """Slots that have already started cannot be reserved."""
    past_id = await make_slot(day=date(2020, 1, 1))
    starting_id = await make_slot(day=date(2024, 7, 1), start="08:00")

    with pytest.raises(SlotUnavailable):
        await BookingService(db).reserve(patient_a, booking(past_id), now=NOW)
    with pytest.raises(SlotUnavailable):
        await BookingService(db).reserve(patient_a, booking(starting_id), now=NOW)

    assert await count_appointments(session_factory) == 0
    for slot_id in (past_id, starting_id):
        slot = await fetch_slot(session_factory, slot_id)
        assert slot["is_booked"] is False
        assert slot["booked_by_patient_id"] is None


@pytest.mark.asyncio
async def test_reserve_store_failure_rolls_back():
    """Store errors surface as BookingStoreError after a rollback."""
    session = AsyncMock()
    session.execute.side_effect = OperationalError("UPDATE", {}, Exception("disk I/O error"))

    with pytest.raises(BookingStoreError):
        await BookingService(session).reserve(uuid4(), booking(uuid4()))

    session.rollback.assert_awaited()
    session.commit.assert_not_awaited()


# ============================================================================
# Payment gate
# ============================================================================


@pytest.mark.asyncio
async def test_confirm_booking_with_payment(db, session_factory, make_slot, patient_a):
    """A completed payment leads straight into the reservation."""
    slot_id = await make_slot()
    data = BookingConfirm(
        slot_id=slot_id,
        reason_for_visit="checkup",
        type=AppointmentType.IN_PERSON,
        payment=PaymentDetails(card_number="4242 4242 4242 4242", expiry="12/30", cvc="123"),
    )
    processor = SimulatedPaymentProcessor(delay_seconds=0)
    processor.charge = AsyncMock(wraps=processor.charge)

    appointment = await BookingService(db).confirm_booking(patient_a, data, processor, now=NOW)

    assert appointment.type == AppointmentType.IN_PERSON
    processor.charge.assert_awaited_once()
    assert processor.charge.await_args.args[0] == Decimal("150.00")


@pytest.mark.asyncio
async def test_failed_payment_leaves_no_trace(db, session_factory, make_slot, patient_a):
    """Payment failure happens before the transaction, so nothing changes."""
    slot_id = await make_slot()
    data = BookingConfirm(
        slot_id=slot_id,
        reason_for_visit="checkup",
        type=AppointmentType.ONLINE,
        payment=PaymentDetails(card_number="", expiry="12/30", cvc="123"),
    )

    with pytest.raises(PaymentFailed):
        await BookingService(db).confirm_booking(
            patient_a, data, SimulatedPaymentProcessor(delay_seconds=0), now=NOW
        )

    assert await count_appointments(session_factory) == 0
    slot = await fetch_slot(session_factory, slot_id)
    assert slot["is_booked"] is False
    assert slot["booked_by_patient_id"] is None


@pytest.mark.asyncio
async def test_confirm_booking_skips_payment_for_taken_slot(db, make_slot, patient_a, patient_b):
    """A slot that is already taken is refused before any charge."""
    slot_id = await make_slot()
    await BookingService(db).reserve(patient_a, booking(slot_id), now=NOW)

    processor = SimulatedPaymentProcessor(delay_seconds=0)
    processor.charge = AsyncMock()
    data = BookingConfirm(
        slot_id=slot_id,
        reason_for_visit="checkup",
        type=AppointmentType.ONLINE,
        payment=PaymentDetails(card_number="4242", expiry="12/30", cvc="123"),
    )

    with pytest.raises(SlotUnavailable):
        await BookingService(db).confirm_booking(patient_b, data, processor, now=NOW)

    processor.charge.assert_not_awaited()


@pytest.mark.asyncio
async def test_confirm_booking_skips_payment_for_past_slot(
    db, session_factory, make_slot, patient_a
):
    """A slot in the past is refused before any charge."""
    slot_id = await make_slot(day=date(2020, 1, 1))
    processor = SimulatedPaymentProcessor(delay_seconds=0)
    processor.charge = AsyncMock()
    data = BookingConfirm(
        slot_id=slot_id,
        reason_for_visit="checkup",
        type=AppointmentType.ONLINE,
        payment=PaymentDetails(card_number="4242", expiry="12/30", cvc="123"),
    )

    with pytest.raises(SlotUnavailable):
        await BookingService(db).confirm_booking(patient_a, data, processor, now=NOW)

    processor.charge.assert_not_awaited()
    assert await count_appointments(session_factory) == 0


# ============================================================================
# Release
# ============================================================================


@pytest.mark.asyncio
async def test_release_restores_availability(
    db, session_factory, make_slot, patient_a, patient_b
):
    """Cancelling frees the slot and lets another patient book it."""
    slot_id = await make_slot()
    service = BookingService(db)
    appointment = await service.reserve(patient_a, booking(slot_id), now=NOW)

    cancelled = await service.release(appointment.id, slot_id)

    assert cancelled.status == AppointmentStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    slot = await fetch_slot(session_factory, slot_id)
    assert slot["is_booked"] is False
    assert slot["booked_by_patient_id"] is None

    rebooked = await service.reserve(patient_b, booking(slot_id), now=NOW)
    assert rebooked.patient_id == patient_b


@pytest.mark.asyncio
async def test_release_requires_slot_reference(db):
    """Without a slot id there is nothing to release."""
    with pytest.raises(MissingSlotReference):
        await BookingService(db).release(uuid4(), None)


@pytest.mark.asyncio
async def test_release_unknown_appointment(db, make_slot):
    """Unknown appointments are reported as not found."""
    slot_id = await make_slot()
    with pytest.raises(AppointmentNotFound):
        await BookingService(db).release(uuid4(), slot_id)


@pytest.mark.asyncio
async def test_release_twice_does_not_free_rebooked_slot(
    db, session_factory, make_slot, patient_a, patient_b
):
    """A stale second cancel must not release someone else's new booking."""
    slot_id = await make_slot()
    service = BookingService(db)
    first = await service.reserve(patient_a, booking(slot_id), now=NOW)
    await service.release(first.id, slot_id)
    await service.reserve(patient_b, booking(slot_id), now=NOW)

    with pytest.raises(AppointmentNotActive):
        await service.release(first.id, slot_id)

    slot = await fetch_slot(session_factory, slot_id)
    assert slot["is_booked"] is True
    assert slot["booked_by_patient_id"] == patient_b


@pytest.mark.asyncio
async def test_release_leaves_slot_held_by_another_patient(
    db, session_factory, make_slot, patient_a, patient_b
):
    """Only the appointment's own patient hold is released."""
    slot_id = await make_slot()
    service = BookingService(db)
    appointment = await service.reserve(patient_a, booking(slot_id), now=NOW)

    await db.execute(
        update(availability_slots)
        .where(availability_slots.c.id == slot_id)
        .values(booked_by_patient_id=patient_b)
    )
    await db.commit()

    with pytest.raises(SlotNotFound):
        await service.release(appointment.id, slot_id)

    slot = await fetch_slot(session_factory, slot_id)
    assert slot["is_booked"] is True
    assert slot["booked_by_patient_id"] == patient_b
    stored = await fetch_appointment(session_factory, appointment.id)
    assert stored["status"] == AppointmentStatus.BOOKED.value


@pytest.mark.asyncio
async def test_release_with_deleted_slot_aborts(db, session_factory, make_slot, patient_a):
    """A vanished slot aborts the whole cancellation; the appointment stays booked."""
    slot_id = await make_slot()
    service = BookingService(db)
    appointment = await service.reserve(patient_a, booking(slot_id), now=NOW)

    await db.execute(delete(availability_slots).where(availability_slots.c.id == slot_id))
    await db.commit()

    with pytest.raises(SlotNotFound):
        await service.release(appointment.id, slot_id)

    stored = await fetch_appointment(session_factory, appointment.id)
    assert stored["status"] == AppointmentStatus.BOOKED.value
    assert stored["cancelled_at"] is None


@pytest.mark.asyncio
async def test_release_with_deleted_slot_when_orphans_allowed(
    db, session_factory, make_slot, patient_a
):
    """With orphan release enabled the cancellation commits anyway."""
    slot_id = await make_slot()
    config = settings.model_copy(update={"release_orphaned_appointments": True})
    service = BookingService(db, config=config)
    appointment = await service.reserve(patient_a, booking(slot_id), now=NOW)

    await db.execute(delete(availability_slots).where(availability_slots.c.id == slot_id))
    await db.commit()

    cancelled = await service.release(appointment.id, slot_id)

    assert cancelled.status == AppointmentStatus.CANCELLED
    stored = await fetch_appointment(session_factory, appointment.id)
    assert stored["status"] == AppointmentStatus.CANCELLED.value


# ============================================================================
# Finalize
# ============================================================================


@pytest.mark.asyncio
async def test_finalize_is_terminal(db, session_factory, make_slot, patient_a):
    """After completion a cancel fails and the slot stays booked."""
    slot_id = await make_slot()
    service = BookingService(db)
    appointment = await service.reserve(patient_a, booking(slot_id), now=NOW)

    completed = await service.finalize(appointment.id)
    assert completed.status == AppointmentStatus.COMPLETED
    assert completed.completed_at is not None

    with pytest.raises(AppointmentNotActive) as exc_info:
        await service.release(appointment.id, slot_id)
    assert exc_info.value.current_status == "completed"

    stored = await fetch_appointment(session_factory, appointment.id)
    assert stored["status"] == AppointmentStatus.COMPLETED.value
    slot = await fetch_slot(session_factory, slot_id)
    assert slot["is_booked"] is True
    assert slot["booked_by_patient_id"] == patient_a


@pytest.mark.asyncio
async def test_finalize_cancelled_appointment_fails(db, make_slot, patient_a):
    """Cancelled appointments cannot be completed."""
    slot_id = await make_slot()
    service = BookingService(db)
    appointment = await service.reserve(patient_a, booking(slot_id), now=NOW)
    await service.release(appointment.id, slot_id)

    with pytest.raises(AppointmentNotActive):
        await service.finalize(appointment.id)


@pytest.mark.asyncio
async def test_finalize_unknown_appointment(db):
    """Unknown appointments are reported as not found."""
    with pytest.raises(AppointmentNotFound):
        await BookingService(db).finalize(uuid4())


@pytest.mark.asyncio
async def test_finalize_and_cancel_race_has_one_winner(
    db, session_factory, make_slot, patient_a
):
    """Concurrent finalize and cancel: the first commit wins, the other aborts."""
    slot_id = await make_slot()
    appointment = await BookingService(db).reserve(patient_a, booking(slot_id), now=NOW)

    async def cancel():
        async with session_factory() as session:
            return await BookingService(session).release(appointment.id, slot_id)

    async def complete():
        async with session_factory() as session:
            return await BookingService(session).finalize(appointment.id)

    results = await asyncio.gather(cancel(), complete(), return_exceptions=True)

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], AppointmentNotActive)

    stored = await fetch_appointment(session_factory, appointment.id)
    slot = await fetch_slot(session_factory, slot_id)
    assert stored["status"] == winners[0].status.value
    if stored["status"] == AppointmentStatus.CANCELLED.value:
        assert slot["is_booked"] is False
    else:
        assert slot["is_booked"] is True


@pytest.mark.asyncio
async def test_slot_holder_invariant_across_lifecycle(
    db, session_factory, make_slot, patient_a, patient_b
):
    """is_booked always matches the presence of a holder."""
    slot_ids = [await make_slot(start=start) for start in ("09:00", "09:30", "10:00")]
    service = BookingService(db)

    first = await service.reserve(patient_a, booking(slot_ids[0]), now=NOW)
    await service.reserve(patient_b, booking(slot_ids[1]), now=NOW)
    await service.release(first.id, slot_ids[0])

    async with session_factory() as session:
        rows = (await session.execute(select(availability_slots))).mappings().all()

    assert len(rows) == 3
    for row in rows:
        assert row["is_booked"] == (row["booked_by_patient_id"] is not None)

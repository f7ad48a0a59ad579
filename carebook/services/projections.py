"""Read projections derived from appointment and slot rows.

All functions are pure: they take the current rows plus the evaluation time
and return a fresh view. Nothing here is cached or maintained incrementally,
so results move with ``now`` even when no write happens.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, tzinfo
from typing import Any

from carebook.schemas.appointments import AppointmentStatus, AppointmentType

Row = Mapping[str, Any]

UNKNOWN_PATIENT = "Unknown Patient"
NO_EMAIL = "No email provided"
JOIN_WINDOW = timedelta(minutes=15)
NEXT_APPOINTMENTS_LIMIT = 5
STATS_MONTHS = 6


def _is_booked(row: Row) -> bool:
    return row["status"] == AppointmentStatus.BOOKED.value


def local_date_key(moment: datetime, tz: tzinfo) -> str:
    """``YYYY-MM-DD`` of ``moment`` as seen in ``tz``."""
    return moment.astimezone(tz).date().isoformat()


def initials(name: str) -> str:
    """Upper-cased first letters of each word in ``name``."""
    return "".join(part[0] for part in name.split() if part).upper()


def group_appointments_by_date(rows: Iterable[Row], tz: tzinfo) -> dict[str, list[Row]]:
    """Partition appointments by local calendar date, both levels ascending."""
    grouped: dict[str, list[Row]] = {}
    for row in sorted(rows, key=lambda r: r["appointment_at"]):
        grouped.setdefault(local_date_key(row["appointment_at"], tz), []).append(row)
    return dict(sorted(grouped.items()))


def group_slots_by_date(rows: Iterable[Row]) -> dict[str, list[Row]]:
    """Partition slots by their ``date``; each day ordered by start time."""
    grouped: dict[str, list[Row]] = {}
    for row in sorted(rows, key=lambda r: (r["date"], r["start_time"])):
        grouped.setdefault(row["date"].isoformat(), []).append(row)
    return grouped


def upcoming(rows: Iterable[Row], now: datetime) -> list[Row]:
    """Booked appointments at or after ``now``, soonest first."""
    selected = [r for r in rows if _is_booked(r) and r["appointment_at"] >= now]
    return sorted(selected, key=lambda r: r["appointment_at"])


def history(rows: Iterable[Row], now: datetime) -> list[Row]:
    """Everything that is not upcoming, newest first."""
    selected = [r for r in rows if not _is_booked(r) or r["appointment_at"] < now]
    return sorted(selected, key=lambda r: r["appointment_at"], reverse=True)


def patient_roster(rows: Iterable[Row]) -> list[dict[str, Any]]:
    """
    One entry per distinct patient in a doctor's appointments.

    ``first_seen`` is the earliest appointment time for that patient; the
    display fields come from the same appointment's booking snapshot.
    """
    roster: dict[Any, dict[str, Any]] = {}

    for row in rows:
        patient_id = row["patient_id"]
        if not patient_id:
            continue

        existing = roster.get(patient_id)
        if existing is None or row["appointment_at"] < existing["first_seen"]:
            name = row.get("patient_name") or UNKNOWN_PATIENT
            roster[patient_id] = {
                "patient_id": patient_id,
                "name": name,
                "email": row.get("patient_email") or NO_EMAIL,
                "initials": initials(row.get("patient_name") or ""),
                "first_seen": row["appointment_at"],
            }

    return sorted(roster.values(), key=lambda entry: entry["name"].lower())


def bookable_slots(rows: Iterable[Row], now: datetime) -> dict[str, list[Row]]:
    """Unbooked slots strictly in the future, grouped by date."""
    return group_slots_by_date(r for r in rows if not r["is_booked"] and r["slot_at"] > now)


def todays_appointments(rows: Iterable[Row], now: datetime, tz: tzinfo) -> list[Row]:
    """Appointments on ``now``'s local date, in time order."""
    today = local_date_key(now, tz)
    selected = [r for r in rows if local_date_key(r["appointment_at"], tz) == today]
    return sorted(selected, key=lambda r: r["appointment_at"])


def _month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def _shift_months(moment: datetime, months: int) -> datetime:
    index = moment.year * 12 + (moment.month - 1) + months
    return moment.replace(year=index // 12, month=index % 12 + 1, day=1)


def doctor_stats(rows: Iterable[Row], now: datetime, tz: tzinfo) -> dict[str, Any]:
    """
    Dashboard figures for a doctor.

    ``total_appointments`` and ``new_patients`` cover appointments from the
    start of the current local month onwards; ``monthly_counts`` holds the
    last six calendar months, oldest first.
    """
    local_now = now.astimezone(tz)
    month_start = local_now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    monthly_counts = {
        _month_key(_shift_months(month_start, -offset)): 0
        for offset in range(STATS_MONTHS - 1, -1, -1)
    }

    total = 0
    patient_ids = set()
    for row in rows:
        local_at = row["appointment_at"].astimezone(tz)
        if local_at >= month_start:
            total += 1
            patient_ids.add(row["patient_id"])

        key = _month_key(local_at)
        if key in monthly_counts:
            monthly_counts[key] += 1

    return {
        "total_appointments": total,
        "new_patients": len(patient_ids),
        "monthly_counts": monthly_counts,
    }


def next_appointments(rows: Iterable[Row], now: datetime) -> list[dict[str, Any]]:
    """
    A patient's next few upcoming appointments.

    Online visits are joinable from 15 minutes before to 15 minutes after
    the start time.
    """
    result = []
    for row in upcoming(rows, now)[:NEXT_APPOINTMENTS_LIMIT]:
        is_online = row["type"] == AppointmentType.ONLINE.value
        result.append(
            {**row, "is_joinable": is_online and abs(row["appointment_at"] - now) <= JOIN_WINDOW}
        )
    return result

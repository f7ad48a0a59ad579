"""Availability slot schemas for request/response validation."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

# Half-hour marks a doctor can publish; lunch (13:00-14:00) is never offered.
SLOT_TIME_CATALOG: tuple[str, ...] = (
    "09:00",
    "09:30",
    "10:00",
    "10:30",
    "11:00",
    "11:30",
    "12:00",
    "12:30",
    "14:00",
    "14:30",
    "15:00",
    "15:30",
    "16:00",
    "16:30",
    "17:00",
)


class AvailabilityPublish(BaseModel):
    """Schema for publishing a batch of availability slots."""

    dates: list[date] = Field(..., min_length=1)
    times: list[str] = Field(..., min_length=1)

    @field_validator("dates")
    @classmethod
    def dedupe_dates(cls, v: list[date]) -> list[date]:
        """Drop repeated dates, keeping order."""
        return list(dict.fromkeys(v))

    @field_validator("times")
    @classmethod
    def validate_times(cls, v: list[str]) -> list[str]:
        """Only catalog times may be published."""
        cleaned = list(dict.fromkeys(t.strip() for t in v))
        unknown = [t for t in cleaned if t not in SLOT_TIME_CATALOG]
        if unknown:
            raise ValueError(f"Unsupported time slots: {', '.join(unknown)}")
        return cleaned


class AvailabilitySlotResponse(BaseModel):
    """Schema for an availability slot."""

    id: UUID
    doctor_id: UUID
    date: date
    start_time: str
    end_time: str
    slot_at: datetime
    is_booked: bool
    booked_by_patient_id: UUID | None = None

    model_config = {"from_attributes": True}


class AvailabilityPublishResponse(BaseModel):
    """Result of a publish batch."""

    created: int
    items: list[AvailabilitySlotResponse]


class SlotsByDateResponse(BaseModel):
    """Slots partitioned by calendar date (YYYY-MM-DD keys, ascending)."""

    dates: list[date]
    slots: dict[str, list[AvailabilitySlotResponse]]

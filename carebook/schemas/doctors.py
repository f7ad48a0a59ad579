"""Doctor and patient profile schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer

# ============================================================================
# Doctor Profile Schemas
# ============================================================================


class DoctorBase(BaseModel):
    """Base schema for doctor."""

    name: str = Field(..., min_length=1, max_length=200)
    specialty: str | None = Field(None, max_length=200)
    consultation_fee: Decimal | None = Field(None, ge=0, decimal_places=2)
    location: str | None = None


class DoctorResponse(DoctorBase):
    """Doctor response schema."""

    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", when_used="json")
    def serialize_decimal(self, value: Decimal | None) -> float | None:
        """Serialize Decimal to float for JSON."""
        return float(value) if value is not None else None


"""Doctor profile model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Column,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
)

from carebook.models.types import UTCDateTime, utcnow

metadata = MetaData()

doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", Text, nullable=False),
    Column("specialty", String(200), index=True),
    Column("consultation_fee", Numeric(10, 2)),
    Column("location", Text),
    # Metadata
    Column("created_at", UTCDateTime, nullable=False, default=utcnow),
    Column("updated_at", UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow),
)

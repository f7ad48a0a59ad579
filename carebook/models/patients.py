"""Patient profile model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Column,
    MetaData,
    Table,
    Text,
    Uuid,
)

from carebook.models.types import UTCDateTime, utcnow

metadata = MetaData()

patients = Table(
    "patients",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("display_name", Text, nullable=False),
    Column("email", Text, nullable=False),
    # Metadata
    Column("created_at", UTCDateTime, nullable=False, default=utcnow),
    Column("updated_at", UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow),
)

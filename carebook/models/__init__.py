"""Database models."""

from sqlalchemy import MetaData

from carebook.models.appointments import appointments
from carebook.models.availability_slots import availability_slots
from carebook.models.doctors import doctors
from carebook.models.patients import patients

# Combined metadata for create_all / drop_all
metadata = MetaData()
for _table in (appointments, availability_slots, doctors, patients):
    _table.to_metadata(metadata)

__all__ = [
    "appointments",
    "availability_slots",
    "doctors",
    "metadata",
    "patients",
]

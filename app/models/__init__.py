"""Database models."""

from app.models.appointments import appointments
from app.models.base import metadata
from app.models.doctor_slots import doctor_slots
from app.models.users import users

__all__ = [
    "appointments",
    "doctor_slots",
    "metadata",
    "users",
]

"""Slot ledger schemas."""

from uuid import UUID

from pydantic import Field, field_validator

from app.schemas.common import CamelModel, normalize_slot_date, normalize_slot_time


class SlotDay(CamelModel):
    """Published times for one date."""

    date: str
    times: list[str]


class PublishSlotsRequest(CamelModel):
    """Doctor request to publish the times offered on a date."""

    date: str
    times: list[str] = Field(..., max_length=96)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        return normalize_slot_date(v)

    @field_validator("times")
    @classmethod
    def validate_times(cls, v: list[str]) -> list[str]:
        """Normalize each time and drop repeats, keeping first occurrence."""
        normalized = [normalize_slot_time(t) for t in v]
        return list(dict.fromkeys(normalized))


class PublishSlotsResponse(CamelModel):
    """Doctor's ledger after publishing."""

    message: str
    available_slots: list[SlotDay]


class AvailableDoctor(CamelModel):
    """Doctor with a non-empty ledger."""

    id: UUID
    name: str
    specialization: str | None = None
    available_slots: list[SlotDay]


class AvailableAppointmentEntry(CamelModel):
    """Admin view of a doctor's open slots."""

    doctor_id: UUID
    doctor_name: str
    specialization: str | None = None
    email: str
    available_slots: list[SlotDay]


class AvailableAppointmentsResponse(CamelModel):
    """Admin listing of every doctor's open slots."""

    appointments: list[AvailableAppointmentEntry]

"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from app.config import settings
from app.schemas.common import CamelModel, normalize_slot_date, normalize_slot_time


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELED = "canceled"


class BookingRequest(CamelModel):
    """Patient request to book a published slot."""

    doctor_id: UUID
    date: str
    time: str
    reason: str = Field(..., min_length=1, max_length=500)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        return normalize_slot_date(v)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return normalize_slot_time(v)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        """Reject blank reasons."""
        v = v.strip()
        if not v:
            raise ValueError("Reason is required")
        return v


class AppointmentStatusUpdate(CamelModel):
    """Doctor request to confirm or reject an appointment."""

    status: AppointmentStatus
    notes: str | None = Field(None, max_length=1000)


class PatientRef(CamelModel):
    """Patient fields embedded in an appointment."""

    id: UUID
    name: str
    email: str


class DoctorRef(CamelModel):
    """Doctor fields embedded in an appointment."""

    id: UUID
    name: str
    email: str
    specialization: str | None = None


class AppointmentResponse(CamelModel):
    """Appointment with patient and doctor populated."""

    id: UUID
    user: PatientRef
    doctor: DoctorRef
    date: str
    time: str
    status: AppointmentStatus
    reason: str
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class AppointmentActionResponse(CamelModel):
    """Result of a booking or status change."""

    message: str
    appointment: AppointmentResponse


class AppointmentFilters(CamelModel):
    """Schema for admin appointment filtering."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=settings.default_page_size, ge=1, le=settings.max_page_size)
    status: AppointmentStatus | None = None
    doctor_id: UUID | None = None
    user_id: UUID | None = None
    from_date: str | None = None
    to_date: str | None = None
    search: str | None = None

    @field_validator("from_date", "to_date")
    @classmethod
    def validate_dates(cls, v: str | None) -> str | None:
        return normalize_slot_date(v) if v else None

    @model_validator(mode="after")
    def check_date_range(self) -> "AppointmentFilters":
        """Ensure the range is not inverted."""
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValueError("fromDate must not be after toDate")
        return self


class AppointmentPage(CamelModel):
    """Paginated appointment listing."""

    appointments: list[AppointmentResponse]
    total_pages: int
    current_page: int
    total_results: int

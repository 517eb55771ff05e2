"""Admin-specific schemas."""

from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel


class DoctorAppointmentCount(CamelModel):
    """Number of appointments assigned to one doctor."""

    doctor_id: UUID
    doctor_name: str
    specialization: str | None = None
    count: int


class DailyAppointmentCount(CamelModel):
    """Appointments created on one calendar day (UTC)."""

    date: str
    count: int


class AppointmentStatistics(CamelModel):
    """Response schema for the admin dashboard."""

    total_appointments: int
    by_status: dict[str, int] = Field(
        ...,
        description="Appointment count per status",
        examples=[{"pending": 4, "confirmed": 10, "rejected": 1, "canceled": 2}],
    )
    by_doctor: list[DoctorAppointmentCount]
    last_seven_days: list[DailyAppointmentCount]
    users_by_role: dict[str, int] = Field(
        ...,
        description="Account count per role",
        examples=[{"user": 120, "doctor": 8, "admin": 2}],
    )

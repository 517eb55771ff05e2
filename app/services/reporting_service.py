"""Aggregate reporting over appointments and accounts."""

from datetime import UTC, datetime, timedelta

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointments import appointments
from app.models.users import users
from app.schemas.admin import AppointmentStatistics
from app.schemas.appointments import AppointmentStatus
from app.services.user_service import UserService


class ReportingService:
    """Read-only statistics for the admin dashboard."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _count_by_status(self) -> dict[str, int]:
        stmt = select(appointments.c.status, func.count()).group_by(appointments.c.status)
        result = await self.db.execute(stmt)

        counts = {status.value: 0 for status in AppointmentStatus}
        for status, count in result.all():
            counts[status] = count
        return counts

    async def _count_by_doctor(self) -> list[dict]:
        count_col = func.count(appointments.c.id).label("count")
        stmt = (
            select(
                users.c.id.label("doctor_id"),
                users.c.name.label("doctor_name"),
                users.c.specialization,
                count_col,
            )
            .select_from(appointments.join(users, appointments.c.doctor_id == users.c.id))
            .group_by(users.c.id, users.c.name, users.c.specialization)
            .order_by(count_col.desc(), users.c.name)
        )
        result = await self.db.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def _last_seven_days(self, now: datetime) -> list[dict]:
        """Appointments created per UTC day over the last week, oldest first."""
        today_start = now.astimezone(UTC).replace(hour=0, minute=0, second=0, microsecond=0)

        days = []
        for i in range(7):
            day_start = today_start - timedelta(days=6 - i)
            day_end = day_start + timedelta(days=1)

            day_result = await self.db.execute(
                select(func.count())
                .select_from(appointments)
                .where(
                    and_(
                        appointments.c.created_at >= day_start,
                        appointments.c.created_at < day_end,
                    )
                )
            )
            days.append({"date": day_start.date().isoformat(), "count": day_result.scalar_one()})

        return days

    async def get_statistics(self, now: datetime | None = None) -> AppointmentStatistics:
        """
        Build the admin dashboard report.

        Args:
            now: Reference time for the seven-day window (defaults to the
                current UTC time)

        Returns:
            Totals, per-status and per-doctor counts, daily counts for the
            last seven days and account counts per role
        """
        now = now or datetime.now(UTC)

        total_result = await self.db.execute(select(func.count()).select_from(appointments))
        total = total_result.scalar_one()

        return AppointmentStatistics(
            total_appointments=total,
            by_status=await self._count_by_status(),
            by_doctor=await self._count_by_doctor(),
            last_seven_days=await self._last_seven_days(now),
            users_by_role=await UserService().count_by_role(self.db),
        )

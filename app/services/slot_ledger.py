"""Doctor slot ledger.

Each doctor publishes, per calendar date, the times of day they accept
bookings. The ledger is availability only: a booked slot stays listed and
the booking engine checks live appointments for real vacancy.
"""

from collections.abc import Iterable
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.models.doctor_slots import doctor_slots
from app.models.users import users

logger = structlog.get_logger(__name__)


def _group_rows(rows: Iterable) -> list[dict]:
    """Fold ordered slot rows into ``[{date, times}]``."""
    days: list[dict] = []
    for row in rows:
        if not days or days[-1]["date"] != row.slot_date:
            days.append({"date": row.slot_date, "times": []})
        days[-1]["times"].append(row.slot_time)
    return days


class SlotLedger:
    """Per-doctor calendar of published time slots."""

    def __init__(self, db: AsyncSession):
        """Initialize ledger with database session."""
        self.db = db

    async def _require_doctor(self, doctor_id: UUID) -> None:
        stmt = select(users.c.id).where(
            and_(users.c.id == doctor_id, users.c.role == "doctor")
        )
        result = await self.db.execute(stmt)
        if result.scalar_one_or_none() is None:
            raise NotFoundException("Doctor not found")

    async def get_slots(self, doctor_id: UUID) -> list[dict]:
        """Return the doctor's ledger ordered by date, then publishing order."""
        stmt = (
            select(doctor_slots.c.slot_date, doctor_slots.c.slot_time)
            .where(doctor_slots.c.doctor_id == doctor_id)
            .order_by(doctor_slots.c.slot_date, doctor_slots.c.position)
        )
        result = await self.db.execute(stmt)
        return _group_rows(result.fetchall())

    async def upsert_date(self, doctor_id: UUID, date: str, times: list[str]) -> list[dict]:
        """
        Replace the times a doctor offers on one date.

        The previous entry for the date, if any, is discarded entirely; an
        empty ``times`` list removes the date from the ledger.

        Args:
            doctor_id: Doctor publishing the slots
            date: Normalized ``YYYY-MM-DD`` date
            times: Normalized, duplicate-free ``HH:MM`` times

        Returns:
            The doctor's full ledger after the change

        Raises:
            NotFoundException: If doctor_id is not a doctor account
            ConflictException: If a concurrent publish for the date won
        """
        await self._require_doctor(doctor_id)

        unique_times = list(dict.fromkeys(times))

        try:
            await self.db.execute(
                delete(doctor_slots).where(
                    and_(
                        doctor_slots.c.doctor_id == doctor_id,
                        doctor_slots.c.slot_date == date,
                    )
                )
            )
            if unique_times:
                await self.db.execute(
                    insert(doctor_slots),
                    [
                        {
                            "doctor_id": doctor_id,
                            "slot_date": date,
                            "slot_time": slot_time,
                            "position": position,
                        }
                        for position, slot_time in enumerate(unique_times)
                    ],
                )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("slots_publish_conflict", doctor_id=str(doctor_id), date=date)
            raise ConflictException(
                "Slots for this date were changed concurrently, please retry"
            ) from e

        logger.info(
            "slots_published",
            doctor_id=str(doctor_id),
            date=date,
            count=len(unique_times),
        )

        return await self.get_slots(doctor_id)

    async def has_slot(self, doctor_id: UUID, date: str, time: str) -> bool:
        """Check whether (date, time) is published for the doctor."""
        stmt = select(func.count()).select_from(doctor_slots).where(
            and_(
                doctor_slots.c.doctor_id == doctor_id,
                doctor_slots.c.slot_date == date,
                doctor_slots.c.slot_time == time,
            )
        )
        result = await self.db.execute(stmt)
        return (result.scalar() or 0) > 0

    async def get_slots_for_doctors(self, doctor_ids: list[UUID]) -> dict[UUID, list[dict]]:
        """Return ledgers for several doctors keyed by doctor id."""
        if not doctor_ids:
            return {}

        stmt = (
            select(
                doctor_slots.c.doctor_id,
                doctor_slots.c.slot_date,
                doctor_slots.c.slot_time,
            )
            .where(doctor_slots.c.doctor_id.in_(doctor_ids))
            .order_by(
                doctor_slots.c.doctor_id,
                doctor_slots.c.slot_date,
                doctor_slots.c.position,
            )
        )
        result = await self.db.execute(stmt)

        by_doctor: dict[UUID, list] = {}
        for row in result.fetchall():
            by_doctor.setdefault(row.doctor_id, []).append(row)

        return {doctor_id: _group_rows(rows) for doctor_id, rows in by_doctor.items()}

    async def doctors_with_slots(self) -> list[dict]:
        """Return doctor accounts with a non-empty ledger and their slots."""
        has_slots = select(doctor_slots.c.doctor_id).distinct()
        stmt = (
            select(users.c.id, users.c.name, users.c.email, users.c.specialization)
            .where(and_(users.c.role == "doctor", users.c.id.in_(has_slots)))
            .order_by(users.c.name)
        )
        result = await self.db.execute(stmt)
        doctors = [dict(row) for row in result.mappings().all()]

        ledgers = await self.get_slots_for_doctors([d["id"] for d in doctors])
        for doctor in doctors:
            doctor["available_slots"] = ledgers.get(doctor["id"], [])

        return doctors

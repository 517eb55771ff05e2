"""Appointment service: booking and the appointment status lifecycle."""

from uuid import UUID

import structlog
from sqlalchemy import and_, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    BadRequestException,
    ForbiddenException,
    InvalidTargetException,
    InvalidTransitionException,
    NotFoundException,
    SlotConflictException,
    SlotUnavailableException,
)
from app.database import contains_pattern
from app.models.appointments import LIVE_STATUSES, appointments
from app.models.users import users, utcnow
from app.schemas.appointments import (
    AppointmentFilters,
    AppointmentResponse,
    AppointmentStatus,
    BookingRequest,
)
from app.schemas.auth import AuthContext
from app.schemas.common import total_pages
from app.services.slot_ledger import SlotLedger

logger = structlog.get_logger(__name__)

patient = users.alias("patient")
doctor = users.alias("doctor")

# Statuses a doctor may move an appointment into
DOCTOR_DECISIONS = (AppointmentStatus.CONFIRMED, AppointmentStatus.REJECTED)


def _populated_query():
    """Select appointments joined with their patient and doctor."""
    return select(
        appointments,
        patient.c.name.label("patient_name"),
        patient.c.email.label("patient_email"),
        doctor.c.name.label("doctor_name"),
        doctor.c.email.label("doctor_email"),
        doctor.c.specialization.label("doctor_specialization"),
    ).select_from(
        appointments.join(patient, appointments.c.user_id == patient.c.id).join(
            doctor, appointments.c.doctor_id == doctor.c.id
        )
    )


def _to_response(row) -> AppointmentResponse:
    return AppointmentResponse(
        id=row["id"],
        user={
            "id": row["user_id"],
            "name": row["patient_name"],
            "email": row["patient_email"],
        },
        doctor={
            "id": row["doctor_id"],
            "name": row["doctor_name"],
            "email": row["doctor_email"],
            "specialization": row["doctor_specialization"],
        },
        date=row["date"],
        time=row["time"],
        status=row["status"],
        reason=row["reason"],
        notes=row["notes"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class AppointmentService:
    """Service for booking appointments and moving them through their lifecycle."""

    def __init__(self, db: AsyncSession, ledger: SlotLedger | None = None):
        """Initialize service with database session."""
        self.db = db
        self.ledger = ledger or SlotLedger(db)

    async def _get_row(self, appointment_id: UUID):
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.mappings().first()

        if not row:
            raise NotFoundException("Appointment not found")

        return row

    async def _get_populated(self, appointment_id: UUID) -> AppointmentResponse:
        stmt = _populated_query().where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.mappings().first()

        if not row:
            raise NotFoundException("Appointment not found")

        return _to_response(row)

    async def _transition(
        self,
        appointment_id: UUID,
        allowed_from: tuple[str, ...],
        new_status: str,
        notes: str | None = None,
        message: str | None = None,
    ) -> None:
        """
        Move an appointment to ``new_status`` if it is still in ``allowed_from``.

        The status test and the write happen in one UPDATE, so of two
        concurrent transitions only one applies; the other re-reads the
        status it lost to.
        """
        values = {"status": new_status, "updated_at": utcnow()}
        if notes is not None:
            values["notes"] = notes

        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.id == appointment_id,
                    appointments.c.status.in_(allowed_from),
                )
            )
            .values(**values)
        )
        result = await self.db.execute(stmt)

        if result.rowcount == 0:
            await self.db.rollback()
            current = await self._get_row(appointment_id)
            raise InvalidTransitionException(
                current["status"],
                message.format(status=current["status"]) if message else None,
            )

        await self.db.commit()

    async def slot_taken(self, doctor_id: UUID, date: str, time: str) -> bool:
        """Check whether the slot holds a pending or confirmed appointment."""
        stmt = (
            select(func.count())
            .select_from(appointments)
            .where(
                and_(
                    appointments.c.doctor_id == doctor_id,
                    appointments.c.date == date,
                    appointments.c.time == time,
                    appointments.c.status.in_(LIVE_STATUSES),
                )
            )
        )
        result = await self.db.execute(stmt)
        return (result.scalar() or 0) > 0

    async def book(self, auth: AuthContext, data: BookingRequest) -> AppointmentResponse:
        """
        Book a published slot for the acting patient.

        Checks run in order and stop at the first failure.

        Args:
            auth: Acting patient
            data: Doctor, date, time and reason

        Returns:
            Created appointment in pending status

        Raises:
            InvalidTargetException: If doctor_id is not a doctor account
            SlotUnavailableException: If the slot is not in the doctor's ledger
            SlotConflictException: If the slot already has a live appointment
        """
        doctor_result = await self.db.execute(
            select(users.c.id, users.c.role).where(users.c.id == data.doctor_id)
        )
        target = doctor_result.mappings().first()
        if not target or target["role"] != "doctor":
            raise InvalidTargetException()

        if not await self.ledger.has_slot(data.doctor_id, data.date, data.time):
            raise SlotUnavailableException()

        if await self.slot_taken(data.doctor_id, data.date, data.time):
            logger.info(
                "booking_conflict",
                doctor_id=str(data.doctor_id),
                date=data.date,
                time=data.time,
            )
            raise SlotConflictException()

        stmt = (
            insert(appointments)
            .values(
                user_id=auth.subject_id,
                doctor_id=data.doctor_id,
                date=data.date,
                time=data.time,
                reason=data.reason,
                status=AppointmentStatus.PENDING.value,
            )
            .returning(appointments.c.id)
        )

        try:
            result = await self.db.execute(stmt)
            appointment_id = result.scalar_one()
            await self.db.commit()
        except IntegrityError as e:
            # Another booking for the same slot committed first
            await self.db.rollback()
            logger.info(
                "booking_conflict",
                doctor_id=str(data.doctor_id),
                date=data.date,
                time=data.time,
                race=True,
            )
            raise SlotConflictException() from e

        logger.info(
            "appointment_booked",
            appointment_id=str(appointment_id),
            user_id=str(auth.subject_id),
            doctor_id=str(data.doctor_id),
            date=data.date,
            time=data.time,
        )

        return await self._get_populated(appointment_id)

    async def set_status(
        self,
        appointment_id: UUID,
        auth: AuthContext,
        new_status: AppointmentStatus,
        notes: str | None = None,
    ) -> AppointmentResponse:
        """
        Confirm or reject a pending appointment as its assigned doctor.

        Raises:
            BadRequestException: If new_status is not confirmed or rejected
            NotFoundException: If appointment not found
            ForbiddenException: If the actor is not the assigned doctor
            InvalidTransitionException: If the appointment is no longer pending
        """
        if new_status not in DOCTOR_DECISIONS:
            raise BadRequestException("Invalid status")

        row = await self._get_row(appointment_id)

        if row["doctor_id"] != auth.subject_id:
            raise ForbiddenException("You are not authorized to update this appointment")

        if row["status"] != AppointmentStatus.PENDING.value:
            raise InvalidTransitionException(row["status"])

        await self._transition(
            appointment_id,
            (AppointmentStatus.PENDING.value,),
            new_status.value,
            notes=notes,
        )

        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            doctor_id=str(auth.subject_id),
            status=new_status.value,
        )

        return await self._get_populated(appointment_id)

    async def cancel(self, appointment_id: UUID, auth: AuthContext) -> AppointmentResponse:
        """
        Cancel a pending or confirmed appointment.

        Allowed for the owning patient, the assigned doctor and any admin.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the actor is not a party or an admin
            InvalidTransitionException: If the appointment is already terminal
        """
        row = await self._get_row(appointment_id)

        is_party = auth.subject_id in (row["user_id"], row["doctor_id"])
        if not (is_party or auth.is_admin):
            raise ForbiddenException("You are not authorized to cancel this appointment")

        cancel_message = "Cannot cancel an appointment that is already {status}"
        if row["status"] not in LIVE_STATUSES:
            raise InvalidTransitionException(
                row["status"], cancel_message.format(status=row["status"])
            )

        await self._transition(
            appointment_id,
            LIVE_STATUSES,
            AppointmentStatus.CANCELED.value,
            message=cancel_message,
        )

        logger.info(
            "appointment_canceled",
            appointment_id=str(appointment_id),
            canceled_by=str(auth.subject_id),
            role=auth.role.value,
        )

        return await self._get_populated(appointment_id)

    async def get_appointment(self, appointment_id: UUID, auth: AuthContext) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the actor is neither a party nor an admin
        """
        appointment = await self._get_populated(appointment_id)

        if auth.is_admin:
            return appointment

        if auth.is_doctor:
            allowed = appointment.doctor.id == auth.subject_id
        else:
            allowed = appointment.user.id == auth.subject_id

        if not allowed:
            raise ForbiddenException("You don't have permission to view this appointment")

        return appointment

    async def list_for_context(self, auth: AuthContext) -> list[AppointmentResponse]:
        """List the actor's appointments, newest first.

        Patients see their bookings, doctors the appointments assigned to
        them, admins everything.
        """
        stmt = _populated_query()

        if auth.is_doctor:
            stmt = stmt.where(appointments.c.doctor_id == auth.subject_id)
        elif not auth.is_admin:
            stmt = stmt.where(appointments.c.user_id == auth.subject_id)

        stmt = stmt.order_by(appointments.c.created_at.desc())
        result = await self.db.execute(stmt)
        return [_to_response(row) for row in result.mappings().all()]

    async def list_all(self) -> list[AppointmentResponse]:
        """List every appointment, newest first."""
        stmt = _populated_query().order_by(appointments.c.created_at.desc())
        result = await self.db.execute(stmt)
        return [_to_response(row) for row in result.mappings().all()]

    async def list_detailed(
        self, filters: AppointmentFilters
    ) -> tuple[list[AppointmentResponse], int, int]:
        """
        Filtered, paginated appointment listing for admins.

        Args:
            filters: Status, party, date range and free-text filters

        Returns:
            Tuple of (page items, total results, total pages)
        """
        conditions = []

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.doctor_id:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)

        if filters.user_id:
            conditions.append(appointments.c.user_id == filters.user_id)

        if filters.from_date:
            conditions.append(appointments.c.date >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.date <= filters.to_date)

        if filters.search:
            search_pattern = contains_pattern(filters.search)
            conditions.append(
                or_(
                    patient.c.name.ilike(search_pattern, escape="\\"),
                    patient.c.email.ilike(search_pattern, escape="\\"),
                    doctor.c.name.ilike(search_pattern, escape="\\"),
                    doctor.c.email.ilike(search_pattern, escape="\\"),
                    appointments.c.reason.ilike(search_pattern, escape="\\"),
                )
            )

        base = _populated_query()
        if conditions:
            base = base.where(and_(*conditions))

        count_stmt = select(func.count()).select_from(base.subquery())
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        offset = (filters.page - 1) * filters.limit
        stmt = (
            base.order_by(appointments.c.created_at.desc(), appointments.c.id)
            .limit(filters.limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        items = [_to_response(row) for row in result.mappings().all()]

        return items, total, total_pages(total, filters.limit)

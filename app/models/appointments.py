"""Appointments table model using SQLAlchemy Core."""

import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    Uuid,
)

from app.models.base import metadata
from app.models.users import utcnow

# Statuses that occupy a slot
LIVE_STATUSES = ("pending", "confirmed")

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    # Ownership / references
    Column(
        "user_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "doctor_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    # Slot
    Column("date", String(10), nullable=False),
    Column("time", String(5), nullable=False),
    # Status management
    Column("status", String(20), nullable=False, default="pending", index=True),
    Column("reason", Text, nullable=False),
    Column("notes", Text, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utcnow),
    # Constraints
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'rejected', 'canceled')",
        name="appointments_status_check",
    ),
)

# At most one live appointment per (doctor, date, time)
Index(
    "uq_appointments_live_slot",
    appointments.c.doctor_id,
    appointments.c.date,
    appointments.c.time,
    unique=True,
    postgresql_where=appointments.c.status.in_(LIVE_STATUSES),
    sqlite_where=appointments.c.status.in_(LIVE_STATUSES),
)

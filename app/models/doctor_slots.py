"""Doctor slot ledger table using SQLAlchemy Core."""

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    UniqueConstraint,
    Uuid,
)

from app.models.base import metadata
from app.models.users import utcnow

# One row per published (doctor, date, time). The position column keeps the
# order in which the doctor listed the times for a date.
doctor_slots = Table(
    "doctor_slots",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column(
        "doctor_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("slot_date", String(10), nullable=False),
    Column("slot_time", String(5), nullable=False),
    Column("position", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    UniqueConstraint("doctor_id", "slot_date", "slot_time", name="uq_doctor_slots_slot"),
    Index("ix_doctor_slots_doctor_date", "doctor_id", "slot_date"),
)

"""User model definition using SQLAlchemy Core."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    String,
    Table,
    Text,
    Uuid,
)

from app.models.base import metadata


def utcnow() -> datetime:
    """Timezone-aware current time used for audit columns."""
    return datetime.now(UTC)


users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    # Identity
    Column("name", Text, nullable=False),
    Column("email", String(255), nullable=False, unique=True, index=True),
    Column("password_hash", Text, nullable=False),
    # Authorization
    Column("role", String(20), nullable=False, default="user", index=True),
    # Doctor profile
    Column("specialization", Text, nullable=True),
    # Account state
    Column("is_active", Boolean, nullable=False, default=True),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utcnow),
    CheckConstraint("role IN ('user', 'doctor', 'admin')", name="users_role_check"),
)

"""Create doctor_slots table

Revision ID: 002
Revises: 001
Create Date: 2026-10-17 00:05:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the slot ledger table."""
    op.create_table(
        "doctor_slots",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "doctor_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("slot_date", sa.String(10), nullable=False),
        sa.Column("slot_time", sa.String(5), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.UniqueConstraint(
            "doctor_id", "slot_date", "slot_time", name="uq_doctor_slots_slot"
        ),
    )

    op.create_index(
        "ix_doctor_slots_doctor_date", "doctor_slots", ["doctor_id", "slot_date"], unique=False
    )


def downgrade() -> None:
    """Drop the slot ledger table."""
    op.drop_index("ix_doctor_slots_doctor_date", table_name="doctor_slots")
    op.drop_table("doctor_slots")

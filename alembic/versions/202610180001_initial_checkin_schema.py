"""Initial schema for users, check-ins and the session slot

Revision ID: 202610180001
Revises:
Create Date: 2026-10-18 00:01:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "202610180001"
down_revision = None
branch_labels = None
depends_on = None

user_role_enum = sa.Enum("TECHNICIAN", "SUPERVISOR", "ADMIN", name="user_role")
business_unit_enum = sa.Enum("SECURE_POWER", "POWER_SYSTEMS", name="business_unit")
segment_enum = sa.Enum("UPS", "COOLING", "ENERGY", "ASSISTENCIA_TECNICA", name="segment")
checkin_type_enum = sa.Enum("START_SHIFT", "BREAK", "END_SHIFT", name="checkin_type")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("id", sa.String(length=64), nullable=False, unique=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("email_key", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("role", user_role_enum, nullable=False, server_default="TECHNICIAN"),
        sa.Column("business_unit", business_unit_enum, nullable=True),
        sa.Column("segment", segment_enum, nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email_key", "users", ["email_key"])

    op.create_table(
        "checkins",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("id", sa.String(length=64), nullable=False, unique=True),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("type", checkin_type_enum, nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("survey", sa.JSON(), nullable=False),
        sa.Column("analysis", sa.JSON(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
    )
    op.create_index("ix_checkins_id", "checkins", ["id"])
    op.create_index("ix_checkins_user_id", "checkins", ["user_id"])

    op.create_table(
        "sessions",
        sa.Column("slot", sa.String(length=32), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("user", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_sessions_user_id", "sessions")
    op.drop_table("sessions")
    op.drop_index("ix_checkins_user_id", "checkins")
    op.drop_index("ix_checkins_id", "checkins")
    op.drop_table("checkins")
    op.drop_index("ix_users_email_key", "users")
    op.drop_index("ix_users_id", "users")
    op.drop_table("users")
    for enum_type in (checkin_type_enum, segment_enum, business_unit_enum, user_role_enum):
        enum_type.drop(op.get_bind(), checkfirst=True)

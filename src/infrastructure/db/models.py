from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column
from src.domain.models import BusinessUnit, CheckInType, Segment, UserRole

from .base import Base

CURRENT_SESSION_SLOT = "current"


def _enum_values(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


class UserModel(Base):
    """SQLAlchemy model for users table."""

    __tablename__ = "users"

    # Monotonic insertion order; ids are opaque strings.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    email_key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=_enum_values),
        default=UserRole.TECHNICIAN,
        nullable=False,
    )
    business_unit: Mapped[BusinessUnit | None] = mapped_column(
        Enum(BusinessUnit, name="business_unit", values_callable=_enum_values),
        nullable=True,
    )
    segment: Mapped[Segment | None] = mapped_column(
        Enum(Segment, name="segment", values_callable=_enum_values),
        nullable=True,
    )
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<UserModel(id={self.id}, email={self.email}, role={self.role.value})>"


class CheckInModel(Base):
    """SQLAlchemy model for the check-in log."""

    __tablename__ = "checkins"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    type: Mapped[CheckInType] = mapped_column(
        Enum(CheckInType, name="checkin_type", values_callable=_enum_values),
        nullable=False,
    )
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    survey: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    analysis: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    def __repr__(self) -> str:
        return f"<CheckInModel(id={self.id}, user_id={self.user_id}, type={self.type.value})>"


class SessionModel(Base):
    """Persisted session slot holding the credential-stripped user projection."""

    __tablename__ = "sessions"

    slot: Mapped[str] = mapped_column(String(32), primary_key=True, default=CURRENT_SESSION_SLOT)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

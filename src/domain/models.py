from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


class UserRole(str, enum.Enum):
    TECHNICIAN = "TECHNICIAN"
    SUPERVISOR = "SUPERVISOR"
    ADMIN = "ADMIN"


class BusinessUnit(str, enum.Enum):
    SECURE_POWER = "SECURE_POWER"
    POWER_SYSTEMS = "POWER_SYSTEMS"


class Segment(str, enum.Enum):
    UPS = "UPS"
    COOLING = "COOLING"
    ENERGY = "ENERGY"
    ASSISTENCIA_TECNICA = "ASSISTENCIA_TECNICA"

    @property
    def business_unit(self) -> BusinessUnit:
        if self in (Segment.UPS, Segment.COOLING):
            return BusinessUnit.SECURE_POWER
        return BusinessUnit.POWER_SYSTEMS


class RiskLevel(str, enum.Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    INVALID = "INVALID"


class CheckInType(str, enum.Enum):
    START_SHIFT = "START_SHIFT"
    BREAK = "BREAK"
    END_SHIFT = "END_SHIFT"


class Language(str, enum.Enum):
    EN = "en"
    PT = "pt"
    ES = "es"


AVATAR_URL_TEMPLATE = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class Principal:
    """Authenticated actor resolved from a bearer token."""

    user_id: str
    email: str = ""
    roles: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class SessionUser:
    """Projection of a user with the credential secret stripped."""

    id: str
    name: str
    email: str
    role: UserRole
    avatar_url: str | None = None
    business_unit: BusinessUnit | None = None
    segment: Segment | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "avatar_url": self.avatar_url,
            "business_unit": self.business_unit.value if self.business_unit else None,
            "segment": self.segment.value if self.segment else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionUser:
        business_unit = data.get("business_unit")
        segment = data.get("segment")
        return cls(
            id=data["id"],
            name=data["name"],
            email=data["email"],
            role=UserRole(data["role"]),
            avatar_url=data.get("avatar_url"),
            business_unit=BusinessUnit(business_unit) if business_unit else None,
            segment=Segment(segment) if segment else None,
        )


@dataclass(slots=True)
class User:
    """A registered identity. The password hash never leaves the repository layer."""

    id: str
    name: str
    email: str
    role: UserRole
    password_hash: str | None = None
    avatar_url: str | None = None
    business_unit: BusinessUnit | None = None
    segment: Segment | None = None
    created_at: datetime = field(default_factory=utcnow)

    def to_session(self) -> SessionUser:
        return SessionUser(
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.role,
            avatar_url=self.avatar_url,
            business_unit=self.business_unit,
            segment=self.segment,
        )


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


@dataclass(frozen=True, slots=True)
class SurveyAnswers:
    sleep_quality: int  # 1-5
    energy_level: int  # 0-10
    focus_level: int  # 0-10
    motivation_level: int  # 0-10
    feeling_safe: int  # 0-10

    def __post_init__(self) -> None:
        _check_range("sleep_quality", self.sleep_quality, 1, 5)
        _check_range("energy_level", self.energy_level, 0, 10)
        _check_range("focus_level", self.focus_level, 0, 10)
        _check_range("motivation_level", self.motivation_level, 0, 10)
        _check_range("feeling_safe", self.feeling_safe, 0, 10)

    def to_dict(self) -> dict[str, int]:
        return {
            "sleep_quality": self.sleep_quality,
            "energy_level": self.energy_level,
            "focus_level": self.focus_level,
            "motivation_level": self.motivation_level,
            "feeling_safe": self.feeling_safe,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SurveyAnswers:
        return cls(
            sleep_quality=data["sleep_quality"],
            energy_level=data["energy_level"],
            focus_level=data["focus_level"],
            motivation_level=data["motivation_level"],
            feeling_safe=data["feeling_safe"],
        )


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    fatigue_level: float
    risk_level: RiskLevel
    explanation: str
    recommendation: str

    def __post_init__(self) -> None:
        if not 0 <= self.fatigue_level <= 100:
            raise ValueError(f"fatigue_level must be between 0 and 100, got {self.fatigue_level}")

    @property
    def is_valid(self) -> bool:
        return self.risk_level != RiskLevel.INVALID

    def to_dict(self) -> dict[str, Any]:
        return {
            "fatigue_level": self.fatigue_level,
            "risk_level": self.risk_level.value,
            "explanation": self.explanation,
            "recommendation": self.recommendation,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisResult:
        return cls(
            fatigue_level=float(data["fatigue_level"]),
            risk_level=RiskLevel(data["risk_level"]),
            explanation=str(data["explanation"]),
            recommendation=str(data["recommendation"]),
        )


@dataclass(frozen=True, slots=True)
class GeoLocation:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class CheckInRecord:
    """An accepted check-in. Never constructed for an INVALID analysis."""

    id: str
    user_id: str
    timestamp: datetime
    type: CheckInType
    survey: SurveyAnswers
    analysis: AnalysisResult
    image_url: str | None = None
    location: GeoLocation | None = None

    def __post_init__(self) -> None:
        if not self.analysis.is_valid:
            raise ValueError("Check-in records cannot carry an INVALID analysis")


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)

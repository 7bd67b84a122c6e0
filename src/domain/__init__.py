from src.domain.models import (
    AnalysisResult,
    BusinessUnit,
    CheckInRecord,
    CheckInType,
    GeoLocation,
    Language,
    Principal,
    RiskLevel,
    Segment,
    SessionUser,
    SurveyAnswers,
    User,
    UserRole,
)

__all__ = [
    "AnalysisResult",
    "BusinessUnit",
    "CheckInRecord",
    "CheckInType",
    "GeoLocation",
    "Language",
    "Principal",
    "RiskLevel",
    "Segment",
    "SessionUser",
    "SurveyAnswers",
    "User",
    "UserRole",
]

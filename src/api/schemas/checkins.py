from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from src.domain.models import CheckInType, Language, RiskLevel, SurveyAnswers
from src.domain.services.checkin_workflow import RejectionReason, WorkflowState


class SurveyPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sleep_quality: int = Field(..., ge=1, le=5)
    energy_level: int = Field(..., ge=0, le=10)
    focus_level: int = Field(..., ge=0, le=10)
    motivation_level: int = Field(..., ge=0, le=10)
    feeling_safe: int = Field(..., ge=0, le=10)

    def to_domain(self) -> SurveyAnswers:
        return SurveyAnswers(**self.model_dump())


class AnalysisPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    fatigue_level: float
    risk_level: RiskLevel
    explanation: str
    recommendation: str


class LocationPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class CheckInItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    timestamp: datetime
    type: CheckInType
    image_url: str | None = None
    survey: SurveyPayload
    analysis: AnalysisPayload
    location: LocationPayload | None = None


class CheckInListResponse(BaseModel):
    checkins: list[CheckInItem]


class TodayStatusResponse(BaseModel):
    date: str
    completed: list[CheckInType]
    remaining: list[CheckInType]


class StartWorkflowRequest(BaseModel):
    type: CheckInType = Field(..., description="Which daily check-in is being taken")


class ImageSubmission(BaseModel):
    image: str = Field(
        ..., min_length=1, description="Base64 photo, with or without a data: URL prefix"
    )
    lang: Language | None = None


class SurveySubmission(BaseModel):
    answers: SurveyPayload
    lang: Language | None = None
    location: LocationPayload | None = None


class WorkflowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    state: WorkflowState
    check_in_type: CheckInType | None = None
    error_message: str | None = None
    rejection_reason: RejectionReason | None = None
    result: AnalysisPayload | None = None
    record: CheckInItem | None = None

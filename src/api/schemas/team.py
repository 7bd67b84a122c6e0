from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from src.api.schemas.auth import UserResponse
from src.api.schemas.checkins import CheckInItem
from src.domain.models import Segment


class SegmentStatsItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    segment: Segment
    avg_energy: float
    high_risk_count: int
    record_count: int


class PerformerItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user: UserResponse
    avg_score: float
    record_count: int


class AlertItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user: UserResponse
    latest: CheckInItem


class TeamOverviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: str
    segments: list[SegmentStatsItem]
    top_performers: list[PerformerItem]
    low_performers: list[PerformerItem]
    alerts: list[AlertItem]

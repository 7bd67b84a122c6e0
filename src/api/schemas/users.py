from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from src.domain.models import BusinessUnit, Segment, UserRole


class UserItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: UserRole
    avatar_url: str | None = None
    business_unit: BusinessUnit | None = None
    segment: Segment | None = None
    created_at: datetime


class UsersResponse(BaseModel):
    users: list[UserItem]

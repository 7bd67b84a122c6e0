from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from src.api.deps import get_team_overview_service, get_user_repository, require_roles
from src.api.schemas.checkins import CheckInItem, CheckInListResponse
from src.api.schemas.team import TeamOverviewResponse
from src.domain import Principal, UserRole
from src.domain.services.team_overview import InvalidMonthError, TeamOverviewService
from src.infrastructure.repositories import UserRepository

router = APIRouter(prefix="/team", tags=["Team"])


@router.get("/overview", response_model=TeamOverviewResponse)
async def team_overview(
    month: str = Query(..., pattern=r"^\d{4}-\d{2}$", description="Month as YYYY-MM"),
    service: TeamOverviewService = Depends(get_team_overview_service),
    _: Principal = Depends(require_roles(["SUPERVISOR", "ADMIN"])),
) -> TeamOverviewResponse:
    """Segment stats, top and bottom performers, and critical alerts for a month."""
    try:
        overview = await service.monthly_overview(month)
    except InvalidMonthError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    return TeamOverviewResponse.model_validate(overview)


@router.get("/technicians/{user_id}/checkins", response_model=CheckInListResponse)
async def technician_day(
    user_id: str,
    day: date = Query(..., description="Calendar day as YYYY-MM-DD"),
    service: TeamOverviewService = Depends(get_team_overview_service),
    users: UserRepository = Depends(get_user_repository),
    _: Principal = Depends(require_roles(["SUPERVISOR", "ADMIN"])),
) -> CheckInListResponse:
    """A technician's check-ins on one day, most recent first."""
    user = await users.get_by_id(user_id)
    if user is None or user.role != UserRole.TECHNICIAN:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Technician {user_id} not found",
        )

    records = await service.records_for_day(user_id, day)
    return CheckInListResponse(checkins=[CheckInItem.model_validate(r) for r in records])

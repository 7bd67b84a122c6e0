"""Check-in history and the guided check-in workflow."""

from __future__ import annotations

from zoneinfo import ZoneInfo

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from src.api.deps import (
    get_checkin_repository,
    get_current_user,
    get_workflow_registry,
    require_roles,
)
from src.api.schemas.checkins import (
    CheckInItem,
    CheckInListResponse,
    ImageSubmission,
    StartWorkflowRequest,
    SurveySubmission,
    TodayStatusResponse,
    WorkflowResponse,
)
from src.core.config import get_settings
from src.domain import CheckInType, GeoLocation, Principal
from src.domain.models import utcnow
from src.domain.services.checkin_workflow import (
    CheckInAlreadyCompletedError,
    CheckInWorkflow,
    CheckInWorkflowRegistry,
    InvalidTransitionError,
    WorkflowInProgressError,
    WorkflowSnapshot,
    records_on_day,
)
from src.infrastructure.repositories import CheckInRepository

router = APIRouter(prefix="/checkins", tags=["Check-ins"])
logger = structlog.get_logger()


def _to_response(snapshot: WorkflowSnapshot) -> WorkflowResponse:
    return WorkflowResponse.model_validate(snapshot)


def _conflict(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


def _require_workflow(registry: CheckInWorkflowRegistry, user_id: str) -> CheckInWorkflow:
    workflow = registry.get(user_id)
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No check-in workflow for this user",
        )
    return workflow


@router.get("/me", response_model=CheckInListResponse)
async def list_my_checkins(
    principal: Principal = Depends(get_current_user),
    checkins: CheckInRepository = Depends(get_checkin_repository),
) -> CheckInListResponse:
    """Return the caller's accepted check-ins, most recent first."""
    records = await checkins.query_by_user(principal.user_id)
    return CheckInListResponse(checkins=[CheckInItem.model_validate(r) for r in records])


@router.get("/me/today", response_model=TodayStatusResponse)
async def my_today_status(
    principal: Principal = Depends(get_current_user),
    checkins: CheckInRepository = Depends(get_checkin_repository),
) -> TodayStatusResponse:
    """Which of today's check-in types the caller has already completed."""
    tz = ZoneInfo(get_settings().checkin_timezone)
    today = utcnow().astimezone(tz).date()
    records = records_on_day(await checkins.query_by_user(principal.user_id), today, tz)
    completed = {record.type for record in records}
    return TodayStatusResponse(
        date=today.isoformat(),
        completed=[t for t in CheckInType if t in completed],
        remaining=[t for t in CheckInType if t not in completed],
    )


@router.get("", response_model=CheckInListResponse)
async def list_all_checkins(
    checkins: CheckInRepository = Depends(get_checkin_repository),
    _: Principal = Depends(require_roles(["SUPERVISOR", "ADMIN"])),
) -> CheckInListResponse:
    records = await checkins.query_all()
    return CheckInListResponse(checkins=[CheckInItem.model_validate(r) for r in records])


# --- Workflow ---


@router.post("/workflow", response_model=WorkflowResponse, status_code=status.HTTP_201_CREATED)
async def start_workflow(
    payload: StartWorkflowRequest,
    principal: Principal = Depends(get_current_user),
    registry: CheckInWorkflowRegistry = Depends(get_workflow_registry),
) -> WorkflowResponse:
    """Begin a check-in of the requested type."""
    try:
        snapshot = await registry.start(principal.user_id, payload.type)
    except (CheckInAlreadyCompletedError, WorkflowInProgressError, InvalidTransitionError) as exc:
        await logger.awarning("workflow_start_refused", user_id=principal.user_id, error=str(exc))
        raise _conflict(exc) from exc
    return _to_response(snapshot)


@router.get("/workflow", response_model=WorkflowResponse)
async def get_workflow(
    principal: Principal = Depends(get_current_user),
    registry: CheckInWorkflowRegistry = Depends(get_workflow_registry),
) -> WorkflowResponse:
    workflow = _require_workflow(registry, principal.user_id)
    return _to_response(workflow.snapshot())


@router.post("/workflow/image", response_model=WorkflowResponse)
async def submit_image(
    payload: ImageSubmission,
    principal: Principal = Depends(get_current_user),
    registry: CheckInWorkflowRegistry = Depends(get_workflow_registry),
) -> WorkflowResponse:
    """Submit the photo for face validation."""
    workflow = _require_workflow(registry, principal.user_id)
    try:
        snapshot = await workflow.submit_image(payload.image, payload.lang)
    except InvalidTransitionError as exc:
        raise _conflict(exc) from exc
    return _to_response(snapshot)


@router.post("/workflow/survey", response_model=WorkflowResponse)
async def submit_survey(
    payload: SurveySubmission,
    principal: Principal = Depends(get_current_user),
    registry: CheckInWorkflowRegistry = Depends(get_workflow_registry),
) -> WorkflowResponse:
    """Submit the wellbeing survey and run the fatigue analysis."""
    workflow = _require_workflow(registry, principal.user_id)
    location = (
        GeoLocation(lat=payload.location.lat, lng=payload.location.lng)
        if payload.location
        else None
    )
    try:
        snapshot = await workflow.submit_survey(
            payload.answers.to_domain(), payload.lang, location=location
        )
    except InvalidTransitionError as exc:
        raise _conflict(exc) from exc
    return _to_response(snapshot)


@router.post("/workflow/retake", response_model=WorkflowResponse)
async def retake(
    principal: Principal = Depends(get_current_user),
    registry: CheckInWorkflowRegistry = Depends(get_workflow_registry),
) -> WorkflowResponse:
    workflow = _require_workflow(registry, principal.user_id)
    try:
        return _to_response(workflow.retake())
    except InvalidTransitionError as exc:
        raise _conflict(exc) from exc


@router.post("/workflow/finish", response_model=WorkflowResponse)
async def finish(
    principal: Principal = Depends(get_current_user),
    registry: CheckInWorkflowRegistry = Depends(get_workflow_registry),
) -> WorkflowResponse:
    workflow = _require_workflow(registry, principal.user_id)
    try:
        return _to_response(workflow.finish())
    except InvalidTransitionError as exc:
        raise _conflict(exc) from exc


@router.delete("/workflow", response_model=WorkflowResponse)
async def cancel(
    principal: Principal = Depends(get_current_user),
    registry: CheckInWorkflowRegistry = Depends(get_workflow_registry),
) -> WorkflowResponse:
    """Abandon the current attempt; a pending analysis is discarded."""
    workflow = _require_workflow(registry, principal.user_id)
    try:
        return _to_response(workflow.cancel())
    except WorkflowInProgressError as exc:
        raise _conflict(exc) from exc

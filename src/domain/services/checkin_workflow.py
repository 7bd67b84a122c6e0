"""
Check-in Workflow.

Tagged state machine driving one technician's check-in attempt:

    IDLE -> CAPTURING_IMAGE -> VALIDATING_FACE -> AWAITING_SURVEY
         -> SUBMITTING_ANALYSIS -> RESULT_ACCEPTED | RESULT_REJECTED -> IDLE

A failed face check (rejection or gateway error) returns to CAPTURING_IMAGE.
RESULT_REJECTED only moves forward through ``retake`` (or ``cancel``).
Only ``submit_image`` and ``submit_survey`` suspend, while awaiting the
gateway; every state change happens before the await so a duplicate call for
the same step fails instead of running twice.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol
from zoneinfo import ZoneInfo

import structlog
from src.core.config import get_settings
from src.domain.localization import message
from src.domain.models import (
    AnalysisResult,
    CheckInRecord,
    CheckInType,
    GeoLocation,
    Language,
    SurveyAnswers,
    new_id,
    utcnow,
)
from src.domain.services.analysis_gateway import AnalysisGateway
from src.domain.services.risk_engine import RiskEngine

logger = structlog.get_logger()


class WorkflowState(str, enum.Enum):
    IDLE = "IDLE"
    CAPTURING_IMAGE = "CAPTURING_IMAGE"
    VALIDATING_FACE = "VALIDATING_FACE"
    AWAITING_SURVEY = "AWAITING_SURVEY"
    SUBMITTING_ANALYSIS = "SUBMITTING_ANALYSIS"
    RESULT_ACCEPTED = "RESULT_ACCEPTED"
    RESULT_REJECTED = "RESULT_REJECTED"

    @classmethod
    def active_states(cls) -> tuple[WorkflowState, ...]:
        return (
            cls.CAPTURING_IMAGE,
            cls.VALIDATING_FACE,
            cls.AWAITING_SURVEY,
            cls.SUBMITTING_ANALYSIS,
        )

    @classmethod
    def result_states(cls) -> tuple[WorkflowState, ...]:
        return (cls.RESULT_ACCEPTED, cls.RESULT_REJECTED)


class RejectionReason(str, enum.Enum):
    VALIDATION_REJECTED = "VALIDATION_REJECTED"
    ANALYSIS_INVALID = "ANALYSIS_INVALID"
    GATEWAY_ERROR = "GATEWAY_ERROR"


class InvalidTransitionError(Exception):
    """Raised when an action is not allowed from the current state."""

    def __init__(self, state: WorkflowState, action: str) -> None:
        super().__init__(f"Cannot {action} while check-in is {state.value}")
        self.state = state
        self.action = action


class CheckInAlreadyCompletedError(Exception):
    """Raised when today's check-in of the requested type already exists."""

    def __init__(self, check_in_type: CheckInType) -> None:
        super().__init__(f"{check_in_type.value} check-in already completed today")
        self.check_in_type = check_in_type


class WorkflowInProgressError(Exception):
    """Raised when a user starts a check-in while another attempt is active."""


class CheckInStore(Protocol):
    async def append(self, record: CheckInRecord) -> CheckInRecord: ...

    async def query_by_user(self, user_id: str) -> list[CheckInRecord]: ...


@dataclass(frozen=True, slots=True)
class WorkflowSnapshot:
    """Read-only view of a workflow for the presentation layer."""

    user_id: str
    state: WorkflowState
    check_in_type: CheckInType | None
    error_message: str | None
    rejection_reason: RejectionReason | None
    result: AnalysisResult | None
    record: CheckInRecord | None


def records_on_day(
    records: list[CheckInRecord], day: date, tz: ZoneInfo
) -> list[CheckInRecord]:
    return [record for record in records if record.timestamp.astimezone(tz).date() == day]


class CheckInWorkflow:
    """State machine for a single user's check-in attempts."""

    def __init__(
        self,
        *,
        user_id: str,
        gateway: AnalysisGateway,
        checkins: CheckInStore,
        risk_engine: RiskEngine | None = None,
        clock: Callable[[], datetime] = utcnow,
        timezone: str | None = None,
        enforce_daily_limit: bool | None = None,
    ) -> None:
        settings = get_settings()
        self.user_id = user_id
        self.gateway = gateway
        self.checkins = checkins
        self.risk_engine = risk_engine or RiskEngine()
        self.clock = clock
        self.tz = ZoneInfo(timezone or settings.checkin_timezone)
        self.enforce_daily_limit = (
            settings.enforce_daily_checkin_limit
            if enforce_daily_limit is None
            else enforce_daily_limit
        )

        self.state = WorkflowState.IDLE
        self.history: list[CheckInRecord] = []
        # Bumped on every reset so responses from abandoned attempts are dropped.
        self._generation = 0
        # Set while an accepted record is being written; cancel is refused meanwhile.
        self._persisting = False
        self._reset_attempt()

    # -- queries -----------------------------------------------------------

    def snapshot(self) -> WorkflowSnapshot:
        return WorkflowSnapshot(
            user_id=self.user_id,
            state=self.state,
            check_in_type=self.check_in_type,
            error_message=self.error_message,
            rejection_reason=self.rejection_reason,
            result=self.result,
            record=self.record,
        )

    @property
    def is_active(self) -> bool:
        return self.state in WorkflowState.active_states()

    @property
    def is_persisting(self) -> bool:
        return self._persisting

    async def completed_today(self) -> set[CheckInType]:
        """Check-in types this user already has a record for today."""
        records = await self.checkins.query_by_user(self.user_id)
        today = self.clock().astimezone(self.tz).date()
        return {record.type for record in records_on_day(records, today, self.tz)}

    # -- transitions -------------------------------------------------------

    async def start(self, check_in_type: CheckInType) -> WorkflowSnapshot:
        self._require(WorkflowState.IDLE, action="start a check-in")

        if self.enforce_daily_limit and check_in_type in await self.completed_today():
            raise CheckInAlreadyCompletedError(check_in_type)
        # The daily check awaited the store; someone may have moved us meanwhile.
        self._require(WorkflowState.IDLE, action="start a check-in")

        self._reset_attempt()
        self.check_in_type = check_in_type
        self.state = WorkflowState.CAPTURING_IMAGE
        await logger.ainfo("checkin_started", user_id=self.user_id, type=check_in_type.value)
        return self.snapshot()

    async def submit_image(
        self, image: str, lang: Language | str | None = None
    ) -> WorkflowSnapshot:
        self._require(WorkflowState.CAPTURING_IMAGE, action="submit a photo")
        if not image:
            raise ValueError("Image payload is empty")

        self.image = image
        self.error_message = None
        self.rejection_reason = None
        self.state = WorkflowState.VALIDATING_FACE
        generation = self._generation

        validation = await self.gateway.validate_face(image, lang)

        if generation != self._generation:
            await logger.ainfo("checkin_validation_discarded", user_id=self.user_id)
            return self.snapshot()

        if validation.is_valid:
            self.state = WorkflowState.AWAITING_SURVEY
            await logger.ainfo("checkin_face_validated", user_id=self.user_id)
            return self.snapshot()

        self.image = None
        self.error_message = validation.message or message("no_face", lang)
        self.rejection_reason = (
            RejectionReason.GATEWAY_ERROR
            if validation.failure is not None
            else RejectionReason.VALIDATION_REJECTED
        )
        self.state = WorkflowState.CAPTURING_IMAGE
        await logger.ainfo(
            "checkin_face_rejected",
            user_id=self.user_id,
            reason=self.rejection_reason.value,
        )
        return self.snapshot()

    async def submit_survey(
        self,
        answers: SurveyAnswers,
        lang: Language | str | None = None,
        location: GeoLocation | None = None,
    ) -> WorkflowSnapshot:
        self._require(WorkflowState.AWAITING_SURVEY, action="submit the survey")
        if self.image is None or self.check_in_type is None:
            raise InvalidTransitionError(self.state, "submit the survey without a photo")

        self.survey = answers
        self.state = WorkflowState.SUBMITTING_ANALYSIS
        generation = self._generation

        outcome = await self.gateway.analyze_fatigue(self.image, answers, lang)

        if generation != self._generation:
            await logger.ainfo("checkin_analysis_discarded", user_id=self.user_id)
            return self.snapshot()

        result = outcome.result
        if not self.risk_engine.should_persist(result):
            self.result = result
            self.error_message = result.explanation
            self.rejection_reason = (
                RejectionReason.GATEWAY_ERROR
                if outcome.failure is not None
                else RejectionReason.ANALYSIS_INVALID
            )
            self.image = None
            self.survey = None
            self.state = WorkflowState.RESULT_REJECTED
            await logger.ainfo(
                "checkin_rejected",
                user_id=self.user_id,
                reason=self.rejection_reason.value,
            )
            return self.snapshot()

        record = CheckInRecord(
            id=new_id("chk"),
            user_id=self.user_id,
            timestamp=self.clock(),
            type=self.check_in_type,
            image_url=self.image,
            survey=answers,
            analysis=result,
            location=location,
        )

        self._persisting = True
        try:
            await self.checkins.append(record)
            history = await self.checkins.query_by_user(self.user_id)
        except Exception:
            await logger.aexception("checkin_persist_failed", user_id=self.user_id)
            self._reset()
            raise
        finally:
            self._persisting = False

        if generation != self._generation:
            await logger.awarning(
                "checkin_persisted_after_reset", user_id=self.user_id, checkin_id=record.id
            )
            return self.snapshot()

        self.history = history
        self.result = result
        self.record = record
        self.image = None
        self.survey = None
        self.state = WorkflowState.RESULT_ACCEPTED
        await logger.ainfo(
            "checkin_accepted",
            user_id=self.user_id,
            checkin_id=record.id,
            type=record.type.value,
            risk_level=result.risk_level.value,
            attention=self.risk_engine.requires_attention(result),
        )
        return self.snapshot()

    def retake(self) -> WorkflowSnapshot:
        self._require(WorkflowState.RESULT_REJECTED, action="retake the photo")
        check_in_type = self.check_in_type
        self._generation += 1
        self._reset_attempt()
        self.check_in_type = check_in_type
        self.state = WorkflowState.CAPTURING_IMAGE
        return self.snapshot()

    def finish(self) -> WorkflowSnapshot:
        self._require(WorkflowState.RESULT_ACCEPTED, action="finish")
        self._reset()
        return self.snapshot()

    def cancel(self) -> WorkflowSnapshot:
        """Abandon the attempt; in-flight gateway replies are discarded.

        Raises WorkflowInProgressError while an accepted record is being written.
        """
        if self._persisting:
            raise WorkflowInProgressError("The check-in is being saved")
        if self.state is not WorkflowState.IDLE:
            logger.info("checkin_cancelled", user_id=self.user_id, state=self.state.value)
        self._reset()
        return self.snapshot()

    # -- internals ---------------------------------------------------------

    def _require(self, expected: WorkflowState, *, action: str) -> None:
        if self.state is not expected:
            raise InvalidTransitionError(self.state, action)

    def _reset(self) -> None:
        self._generation += 1
        self._reset_attempt()
        self.state = WorkflowState.IDLE

    def _reset_attempt(self) -> None:
        self.check_in_type: CheckInType | None = None
        self.image: str | None = None
        self.survey: SurveyAnswers | None = None
        self.result: AnalysisResult | None = None
        self.record: CheckInRecord | None = None
        self.error_message: str | None = None
        self.rejection_reason: RejectionReason | None = None


class CheckInWorkflowRegistry:
    """Keeps at most one workflow per user."""

    def __init__(self, factory: Callable[[str], CheckInWorkflow]) -> None:
        self._factory = factory
        self._workflows: dict[str, CheckInWorkflow] = {}

    def get(self, user_id: str) -> CheckInWorkflow | None:
        return self._workflows.get(user_id)

    def get_or_create(self, user_id: str) -> CheckInWorkflow:
        workflow = self._workflows.get(user_id)
        if workflow is None:
            workflow = self._factory(user_id)
            self._workflows[user_id] = workflow
        return workflow

    async def start(self, user_id: str, check_in_type: CheckInType) -> WorkflowSnapshot:
        workflow = self.get_or_create(user_id)
        if workflow.is_active:
            raise WorkflowInProgressError(
                f"A check-in is already in progress ({workflow.state.value})"
            )
        if workflow.state in WorkflowState.result_states():
            workflow.cancel()
        return await workflow.start(check_in_type)

    def discard(self, user_id: str) -> None:
        """Drop a user's workflow, cancelling any attempt in progress."""
        workflow = self._workflows.pop(user_id, None)
        if workflow is not None and not workflow.is_persisting:
            workflow.cancel()

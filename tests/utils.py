from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

from src.core.auth import create_access_token
from src.domain.localization import message
from src.domain.models import (
    AnalysisResult,
    CheckInRecord,
    CheckInType,
    Language,
    RiskLevel,
    SurveyAnswers,
    User,
    UserRole,
    new_id,
    utcnow,
)
from src.domain.services.analysis_gateway import (
    AnalysisOutcome,
    FaceValidation,
    GatewayFailure,
    GatewayFailureKind,
    fallback_analysis,
)
from src.domain.services.auth_service import hash_password
from src.domain.services.risk_engine import RiskEngine
from src.libs.gpt_client import GPTResponse

# Smallest valid JPEG-ish base64 blob; the fake gateway never decodes it.
SAMPLE_IMAGE = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQAAAQABAAD/2wBDAAEBAQ=="


def auth_headers(
    user_id: str = "tech-1",
    role: UserRole = UserRole.TECHNICIAN,
    email: str = "1@1",
) -> dict[str, str]:
    token = create_access_token(user_id, roles=[role.value], email=email)
    return {"Authorization": f"Bearer {token}"}


def sample_survey(**overrides: int) -> SurveyAnswers:
    values = {
        "sleep_quality": 4,
        "energy_level": 8,
        "focus_level": 8,
        "motivation_level": 9,
        "feeling_safe": 10,
    }
    values.update(overrides)
    return SurveyAnswers(**values)


def make_user(
    user_id: str | None = None,
    *,
    email: str | None = None,
    role: UserRole = UserRole.TECHNICIAN,
    password: str = "123",
    **extra: Any,
) -> User:
    user_id = user_id or new_id("user")
    return User(
        id=user_id,
        name=extra.pop("name", f"User {user_id}"),
        email=email or f"{user_id}@example.com",
        role=role,
        password_hash=hash_password(password),
        **extra,
    )


def make_record(
    user_id: str,
    *,
    risk_level: RiskLevel = RiskLevel.LOW,
    fatigue_level: float = 20.0,
    timestamp: datetime | None = None,
    check_in_type: CheckInType = CheckInType.START_SHIFT,
    survey: SurveyAnswers | None = None,
    record_id: str | None = None,
) -> CheckInRecord:
    return CheckInRecord(
        id=record_id or new_id("chk"),
        user_id=user_id,
        timestamp=timestamp or utcnow(),
        type=check_in_type,
        survey=survey or sample_survey(),
        analysis=AnalysisResult(
            fatigue_level=fatigue_level,
            risk_level=risk_level,
            explanation="Pronto.",
            recommendation="Ok.",
        ),
    )


class FakeAnalysisGateway:
    """In-memory gateway with switchable outcomes.

    Set ``hold_analysis`` to an ``asyncio.Event`` to keep ``analyze_fatigue``
    suspended until the test releases it.
    """

    def __init__(self, risk_engine: RiskEngine | None = None) -> None:
        self.risk_engine = risk_engine or RiskEngine()
        self.face_valid = True
        self.face_failure: GatewayFailure | None = None
        self.visual_fatigue = 30.0
        self.expression_valid = True
        self.analysis_failure: GatewayFailure | None = None
        self.hold_analysis: asyncio.Event | None = None
        self.face_calls = 0
        self.analysis_calls = 0

    async def validate_face(
        self, image: str, lang: Language | str | None = None
    ) -> FaceValidation:
        self.face_calls += 1
        if self.face_failure is not None:
            return FaceValidation(
                is_valid=False,
                message=message("face_connection_error", lang),
                failure=self.face_failure,
            )
        if not self.face_valid:
            return FaceValidation(is_valid=False, message=message("no_face", lang))
        return FaceValidation(is_valid=True, message="Face detected")

    async def analyze_fatigue(
        self, image: str, survey: SurveyAnswers, lang: Language | str | None = None
    ) -> AnalysisOutcome:
        self.analysis_calls += 1
        if self.hold_analysis is not None:
            await self.hold_analysis.wait()
        if self.analysis_failure is not None:
            return AnalysisOutcome(result=fallback_analysis(lang), failure=self.analysis_failure)

        assessment = self.risk_engine.assess(
            visual_score=self.visual_fatigue,
            survey=survey,
            expression_valid=self.expression_valid,
        )
        result = self.risk_engine.build_result(
            assessment,
            explanation="Visible signs assessed.",
            recommendation="Stay hydrated.",
        )
        return AnalysisOutcome(result=result, assessment=assessment)


def transport_failure() -> GatewayFailure:
    return GatewayFailure(kind=GatewayFailureKind.TRANSPORT, detail="connection refused")


class MockGPTClient:
    """Replays canned completions and records the messages it was sent."""

    def __init__(self, *replies: str | Exception, delay: float = 0.0) -> None:
        self.replies = list(replies)
        self.delay = delay
        self.calls: list[list[dict[str, Any]]] = []

    async def chat_completion(
        self,
        messages: list[dict[str, Any]],
        temperature: float = 0.0,
        max_tokens: int = 1000,
        response_format: dict[str, str] | None = None,
    ) -> GPTResponse:
        self.calls.append(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return GPTResponse(
            content=reply,
            model="gpt-4o-mini",
            prompt_tokens=10,
            completion_tokens=10,
            total_tokens=20,
            latency_ms=5,
            finish_reason="stop",
        )

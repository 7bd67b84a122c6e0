"""
Analysis Gateway.

Boundary to the external vision model: face validation and fatigue analysis.
Both operations are fail-closed and never raise to the caller; failures are
returned as structured values carrying the localized fallback text.
"""

from __future__ import annotations

import asyncio
import enum
import json
from dataclasses import dataclass
from typing import Any, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError
from src.core.config import get_settings
from src.domain.localization import LANGUAGE_NAMES, message, resolve_language
from src.domain.models import AnalysisResult, Language, RiskLevel, SurveyAnswers
from src.domain.services.risk_engine import RiskAssessment, RiskEngine
from src.libs.gpt_client import (
    JSON_RESPONSE_FORMAT,
    GPTClientError,
    GPTClientProtocol,
    GPTConfigurationError,
    GPTTimeoutError,
    OpenAIClient,
    image_part,
)

logger = structlog.get_logger()

FACE_VALIDATION_PROMPT = """Strict Face Detection Task.
Analyze the image. Is there a REAL human face clearly visible and identifiable?
Reject:
- walls, objects, dark images
- partial faces
- photos of screens or printed photos

Respond in JSON format only:
{"isValid": <boolean>, "message": "<short reason shown to the user>"}
"""

FATIGUE_ANALYSIS_PROMPT = """You are a biometric fatigue analyst.

Set "expressionValid" to false immediately if any of these is visible:
- Mouth wide open
- Hands covering face
- Exaggerated expressions
- Tongue out
- Acting intentionally

Otherwise score visible fatigue from 0 (fully rested) to 100 (exhausted)
using only these visual signs:
- Droopy eyelids
- Dark circles
- Low muscle tone
- Glassy eyes

Use the technician's self-reported metrics only to phrase the explanation
and the recommendation; do not fold them into "visualFatigue".

Write "explanation" and "recommendation" in {language}.

Respond in JSON format only:
{{
  "expressionValid": <boolean>,
  "visualFatigue": <number 0-100>,
  "explanation": "<short explanation>",
  "recommendation": "<short recommendation>"
}}
"""


class GatewayFailureKind(str, enum.Enum):
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    SCHEMA = "schema"


@dataclass(frozen=True, slots=True)
class GatewayFailure:
    """Why a gateway call degraded to its fallback value."""

    kind: GatewayFailureKind
    detail: str


@dataclass(frozen=True, slots=True)
class FaceValidation:
    is_valid: bool
    message: str | None = None
    failure: GatewayFailure | None = None


@dataclass(frozen=True, slots=True)
class AnalysisOutcome:
    """Always-present analysis result plus the failure that produced it, if any."""

    result: AnalysisResult
    assessment: RiskAssessment | None = None
    failure: GatewayFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class GatewaySchemaError(Exception):
    """Raised when the model reply does not match the expected schema."""


class FaceCheckPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    is_valid: StrictBool = Field(validation_alias="isValid")
    message: str | None = None


class FatigueAssessmentPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    expression_valid: StrictBool = Field(validation_alias="expressionValid")
    visual_fatigue: float = Field(ge=0, le=100, validation_alias="visualFatigue")
    explanation: str = Field(min_length=1)
    recommendation: str = Field(min_length=1)


class AnalysisGateway(Protocol):
    """Contract consumed by the check-in workflow."""

    async def validate_face(
        self, image: str, lang: Language | str | None = None
    ) -> FaceValidation: ...

    async def analyze_fatigue(
        self, image: str, survey: SurveyAnswers, lang: Language | str | None = None
    ) -> AnalysisOutcome: ...


def fallback_analysis(lang: Language | str | None) -> AnalysisResult:
    return AnalysisResult(
        fatigue_level=0,
        risk_level=RiskLevel.INVALID,
        explanation=message("connection_error", lang),
        recommendation=message("retry_later", lang),
    )


def parse_json_content(content: str) -> dict[str, Any]:
    """Decode a model reply, tolerating a surrounding markdown code fence."""
    content = content.strip()
    if content.startswith("```"):
        lines = content.split("\n")
        content = "\n".join(lines[1:-1])

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise GatewaySchemaError(f"Invalid JSON in model response: {e}") from e

    if not isinstance(data, dict):
        raise GatewaySchemaError("Model response is not a JSON object")
    return data


def _failure_from(exc: Exception) -> GatewayFailure:
    if isinstance(exc, GPTConfigurationError):
        kind = GatewayFailureKind.CONFIGURATION
    elif isinstance(exc, (GPTTimeoutError, TimeoutError)):
        kind = GatewayFailureKind.TIMEOUT
    elif isinstance(exc, (GatewaySchemaError, ValidationError)):
        kind = GatewayFailureKind.SCHEMA
    else:
        kind = GatewayFailureKind.TRANSPORT
    return GatewayFailure(kind=kind, detail=str(exc) or exc.__class__.__name__)


def survey_context(survey: SurveyAnswers) -> str:
    return (
        "Technician Self-Reported Metrics:\n"
        f"- Sleep Quality: {survey.sleep_quality}/5\n"
        f"- Energy: {survey.energy_level}/10\n"
        f"- Focus: {survey.focus_level}/10\n"
        f"- Motivation: {survey.motivation_level}/10\n"
        f"- Feeling Safe: {survey.feeling_safe}/10"
    )


class OpenAIAnalysisGateway:
    """AnalysisGateway backed by an OpenAI-compatible vision model."""

    def __init__(
        self,
        gpt_client: GPTClientProtocol | None = None,
        risk_engine: RiskEngine | None = None,
        deadline_seconds: float | None = None,
    ) -> None:
        self.gpt_client = gpt_client or OpenAIClient()
        self.risk_engine = risk_engine or RiskEngine()
        self.deadline_seconds = (
            deadline_seconds
            if deadline_seconds is not None
            else get_settings().gateway_deadline_seconds
        )

    async def validate_face(
        self, image: str, lang: Language | str | None = None
    ) -> FaceValidation:
        messages = [
            {"role": "system", "content": FACE_VALIDATION_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Validate this check-in photo."},
                    image_part(image),
                ],
            },
        ]

        try:
            data = await self._request_json(messages, max_tokens=200)
            payload = FaceCheckPayload.model_validate(data)
        except (GPTClientError, GatewaySchemaError, ValidationError, TimeoutError) as exc:
            failure = _failure_from(exc)
            await logger.awarning(
                "face_validation_failed",
                kind=failure.kind.value,
                error=failure.detail,
            )
            return FaceValidation(
                is_valid=False,
                message=message("face_connection_error", lang),
                failure=failure,
            )

        await logger.ainfo("face_validation_completed", is_valid=payload.is_valid)
        return FaceValidation(is_valid=payload.is_valid, message=payload.message)

    async def analyze_fatigue(
        self, image: str, survey: SurveyAnswers, lang: Language | str | None = None
    ) -> AnalysisOutcome:
        language = resolve_language(lang)
        messages = [
            {
                "role": "system",
                "content": FATIGUE_ANALYSIS_PROMPT.format(language=LANGUAGE_NAMES[language]),
            },
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": survey_context(survey)},
                    image_part(image),
                ],
            },
        ]

        try:
            data = await self._request_json(messages, max_tokens=500)
            payload = FatigueAssessmentPayload.model_validate(data)
        except (GPTClientError, GatewaySchemaError, ValidationError, TimeoutError) as exc:
            failure = _failure_from(exc)
            await logger.aerror(
                "fatigue_analysis_failed",
                kind=failure.kind.value,
                error=failure.detail,
            )
            return AnalysisOutcome(result=fallback_analysis(language), failure=failure)

        assessment = self.risk_engine.assess(
            visual_score=payload.visual_fatigue,
            survey=survey,
            expression_valid=payload.expression_valid,
        )
        result = self.risk_engine.build_result(
            assessment,
            explanation=payload.explanation,
            recommendation=payload.recommendation,
        )

        await logger.ainfo(
            "fatigue_analysis_completed",
            risk_level=result.risk_level.value,
            visual_score=assessment.visual_score,
            survey_score=assessment.survey_score,
            final_score=assessment.final_score,
            override_applied=assessment.override_applied,
        )
        return AnalysisOutcome(result=result, assessment=assessment)

    async def _request_json(
        self, messages: list[dict[str, Any]], *, max_tokens: int
    ) -> dict[str, Any]:
        response = await asyncio.wait_for(
            self.gpt_client.chat_completion(
                messages=messages,
                temperature=0.0,
                max_tokens=max_tokens,
                response_format=JSON_RESPONSE_FORMAT,
            ),
            timeout=self.deadline_seconds,
        )
        return parse_json_content(response.content)

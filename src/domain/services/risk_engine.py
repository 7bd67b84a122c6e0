"""
Risk Engine.

Fuses the model's visual fatigue score with the self-reported survey into a
final score, applies the visual override rule and maps the result onto a
risk tier. Pure functions only; no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.core.config import Settings, get_settings
from src.domain.models import AnalysisResult, RiskLevel, SurveyAnswers

SCORE_FLOOR = 0.0
SCORE_CEILING = 100.0


class RiskPolicyError(ValueError):
    """Raised when a risk policy has overlapping or out-of-range thresholds."""


@dataclass(frozen=True, slots=True)
class RiskPolicy:
    """Weights and thresholds for tiering.

    Tiers: ``final > high_threshold`` is HIGH, ``final > moderate_threshold``
    is MODERATE, anything else is LOW. Visual scores strictly above
    ``visual_override_threshold`` force HIGH.
    """

    visual_weight: float = 0.8
    moderate_threshold: float = 40.0
    high_threshold: float = 70.0
    visual_override_threshold: float = 70.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.visual_weight <= 1.0:
            raise RiskPolicyError(f"visual_weight must be within [0, 1], got {self.visual_weight}")
        if not SCORE_FLOOR <= self.moderate_threshold < self.high_threshold <= SCORE_CEILING:
            raise RiskPolicyError(
                "Thresholds must satisfy 0 <= moderate < high <= 100 "
                f"(moderate={self.moderate_threshold}, high={self.high_threshold})"
            )
        if not SCORE_FLOOR <= self.visual_override_threshold <= SCORE_CEILING:
            raise RiskPolicyError(
                f"visual_override_threshold out of range: {self.visual_override_threshold}"
            )

    @property
    def survey_weight(self) -> float:
        return 1.0 - self.visual_weight

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> RiskPolicy:
        settings = settings or get_settings()
        return cls(
            visual_weight=settings.risk_visual_weight,
            moderate_threshold=settings.risk_moderate_threshold,
            high_threshold=settings.risk_high_threshold,
            visual_override_threshold=settings.risk_visual_override_threshold,
        )


@dataclass(frozen=True, slots=True)
class RiskAssessment:
    """Outcome of fusing visual and survey signals."""

    visual_score: float
    survey_score: float
    final_score: float
    risk_level: RiskLevel
    override_applied: bool


def _clamp(score: float) -> float:
    return max(SCORE_FLOOR, min(SCORE_CEILING, float(score)))


class RiskEngine:
    """Scoring and override policy for check-in analyses."""

    def __init__(self, policy: RiskPolicy | None = None) -> None:
        self.policy = policy or RiskPolicy.from_settings()

    @staticmethod
    def survey_score(answers: SurveyAnswers) -> float:
        """Normalize the survey into a 0-100 fatigue score (100 = worst)."""
        wellbeing = [
            (answers.sleep_quality - 1) / 4,
            answers.energy_level / 10,
            answers.focus_level / 10,
            answers.motivation_level / 10,
            answers.feeling_safe / 10,
        ]
        mean = sum(wellbeing) / len(wellbeing)
        return round((1.0 - mean) * 100, 1)

    def final_score(self, visual_score: float, survey_score: float) -> float:
        visual = _clamp(visual_score)
        survey = _clamp(survey_score)
        return round(visual * self.policy.visual_weight + survey * self.policy.survey_weight, 1)

    def tier_for(self, final_score: float) -> RiskLevel:
        if final_score > self.policy.high_threshold:
            return RiskLevel.HIGH
        if final_score > self.policy.moderate_threshold:
            return RiskLevel.MODERATE
        return RiskLevel.LOW

    def assess(
        self,
        *,
        visual_score: float,
        survey: SurveyAnswers | float,
        expression_valid: bool = True,
    ) -> RiskAssessment:
        """Fuse the signals into a tier.

        An acted or obstructed expression short-circuits to INVALID before
        any scoring happens.
        """
        survey_score = survey if isinstance(survey, (int, float)) else self.survey_score(survey)
        visual = _clamp(visual_score)
        survey_score = _clamp(survey_score)

        if not expression_valid:
            return RiskAssessment(
                visual_score=visual,
                survey_score=survey_score,
                final_score=SCORE_FLOOR,
                risk_level=RiskLevel.INVALID,
                override_applied=False,
            )

        final = self.final_score(visual, survey_score)
        override = visual > self.policy.visual_override_threshold
        risk_level = RiskLevel.HIGH if override else self.tier_for(final)
        return RiskAssessment(
            visual_score=visual,
            survey_score=survey_score,
            final_score=final,
            risk_level=risk_level,
            override_applied=override,
        )

    def build_result(
        self,
        assessment: RiskAssessment,
        *,
        explanation: str,
        recommendation: str,
    ) -> AnalysisResult:
        return AnalysisResult(
            fatigue_level=assessment.final_score,
            risk_level=assessment.risk_level,
            explanation=explanation,
            recommendation=recommendation,
        )

    @staticmethod
    def should_persist(result: AnalysisResult) -> bool:
        return result.risk_level != RiskLevel.INVALID

    @staticmethod
    def requires_attention(result: AnalysisResult | None) -> bool:
        """True when a result belongs in the supervisor's critical alerts."""
        return result is not None and result.risk_level == RiskLevel.HIGH

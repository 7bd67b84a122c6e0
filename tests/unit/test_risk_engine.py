"""Unit tests for the risk engine: weighted score, visual override and tiers."""

from __future__ import annotations

import pytest
from src.domain.models import AnalysisResult, RiskLevel
from src.domain.services.risk_engine import RiskEngine, RiskPolicy, RiskPolicyError

from tests.utils import sample_survey


@pytest.fixture()
def engine() -> RiskEngine:
    return RiskEngine(RiskPolicy())


class TestFinalScore:
    def test_visual_override_forces_high(self, engine: RiskEngine) -> None:
        """Visual 80 with survey 10 fuses to 66 but the override still says HIGH."""
        assessment = engine.assess(visual_score=80, survey=10.0)

        assert assessment.final_score == pytest.approx(66.0)
        assert assessment.override_applied is True
        assert assessment.risk_level == RiskLevel.HIGH

    def test_weighted_formula_without_override(self, engine: RiskEngine) -> None:
        assessment = engine.assess(visual_score=50, survey=50.0)

        assert assessment.final_score == pytest.approx(50.0)
        assert assessment.override_applied is False
        assert assessment.risk_level == RiskLevel.MODERATE

    def test_visual_exactly_at_threshold_does_not_override(self, engine: RiskEngine) -> None:
        assessment = engine.assess(visual_score=70, survey=0.0)

        assert assessment.override_applied is False
        assert assessment.final_score == pytest.approx(56.0)
        assert assessment.risk_level == RiskLevel.MODERATE

    def test_scores_are_clamped(self, engine: RiskEngine) -> None:
        assessment = engine.assess(visual_score=140, survey=-5.0)

        assert assessment.visual_score == 100.0
        assert assessment.survey_score == 0.0

    def test_invalid_expression_short_circuits(self, engine: RiskEngine) -> None:
        assessment = engine.assess(visual_score=95, survey=90.0, expression_valid=False)

        assert assessment.risk_level == RiskLevel.INVALID
        assert assessment.final_score == 0.0
        assert assessment.override_applied is False


class TestTiers:
    @pytest.mark.parametrize(
        ("score", "expected"),
        [
            (0.0, RiskLevel.LOW),
            (40.0, RiskLevel.LOW),
            (40.1, RiskLevel.MODERATE),
            (70.0, RiskLevel.MODERATE),
            (70.1, RiskLevel.HIGH),
            (100.0, RiskLevel.HIGH),
        ],
    )
    def test_boundaries(self, engine: RiskEngine, score: float, expected: RiskLevel) -> None:
        assert engine.tier_for(score) == expected


class TestSurveyScore:
    def test_best_answers_score_zero(self) -> None:
        survey = sample_survey(
            sleep_quality=5, energy_level=10, focus_level=10, motivation_level=10, feeling_safe=10
        )
        assert RiskEngine.survey_score(survey) == 0.0

    def test_worst_answers_score_hundred(self) -> None:
        survey = sample_survey(
            sleep_quality=1, energy_level=0, focus_level=0, motivation_level=0, feeling_safe=0
        )
        assert RiskEngine.survey_score(survey) == 100.0

    def test_mixed_answers(self) -> None:
        # wellbeing = (0.5 + 0.5 + 0.5 + 0.5 + 0.5) / 5
        survey = sample_survey(
            sleep_quality=3, energy_level=5, focus_level=5, motivation_level=5, feeling_safe=5
        )
        assert RiskEngine.survey_score(survey) == 50.0

    def test_assess_accepts_survey_answers(self, engine: RiskEngine) -> None:
        survey = sample_survey(
            sleep_quality=3, energy_level=5, focus_level=5, motivation_level=5, feeling_safe=5
        )
        assessment = engine.assess(visual_score=50, survey=survey)

        assert assessment.survey_score == 50.0
        assert assessment.final_score == pytest.approx(50.0)


class TestPolicy:
    def test_rejects_overlapping_thresholds(self) -> None:
        with pytest.raises(RiskPolicyError):
            RiskPolicy(moderate_threshold=70, high_threshold=40)

    def test_rejects_weight_out_of_range(self) -> None:
        with pytest.raises(RiskPolicyError):
            RiskPolicy(visual_weight=1.5)

    def test_survey_weight_is_complement(self) -> None:
        assert RiskPolicy(visual_weight=0.6).survey_weight == pytest.approx(0.4)

    def test_custom_policy_changes_tiers(self) -> None:
        engine = RiskEngine(RiskPolicy(moderate_threshold=20, high_threshold=50))
        assert engine.tier_for(30) == RiskLevel.MODERATE
        assert engine.tier_for(51) == RiskLevel.HIGH


class TestResultHelpers:
    def test_build_result_uses_final_score(self, engine: RiskEngine) -> None:
        assessment = engine.assess(visual_score=50, survey=50.0)
        result = engine.build_result(assessment, explanation="e", recommendation="r")

        assert result.fatigue_level == pytest.approx(50.0)
        assert result.risk_level == RiskLevel.MODERATE
        assert result.explanation == "e"

    def test_invalid_results_are_not_persisted(self) -> None:
        invalid = AnalysisResult(0, RiskLevel.INVALID, "x", "y")
        high = AnalysisResult(90, RiskLevel.HIGH, "x", "y")

        assert RiskEngine.should_persist(invalid) is False
        assert RiskEngine.should_persist(high) is True
        assert RiskEngine.requires_attention(high) is True
        assert RiskEngine.requires_attention(None) is False

"""Unit tests for the vision-model gateway."""

from __future__ import annotations

import json

import pytest
from src.domain.models import Language, RiskLevel
from src.domain.services.analysis_gateway import (
    GatewayFailureKind,
    GatewaySchemaError,
    OpenAIAnalysisGateway,
    parse_json_content,
)
from src.domain.services.risk_engine import RiskEngine, RiskPolicy
from src.libs.gpt_client import GPTAPIError, GPTConfigurationError

from tests.utils import SAMPLE_IMAGE, MockGPTClient, sample_survey


def _gateway(client: MockGPTClient, deadline: float = 5.0) -> OpenAIAnalysisGateway:
    return OpenAIAnalysisGateway(
        gpt_client=client,
        risk_engine=RiskEngine(RiskPolicy()),
        deadline_seconds=deadline,
    )


def _fatigue_reply(**overrides: object) -> str:
    body = {
        "expressionValid": True,
        "visualFatigue": 30,
        "explanation": "Olhos atentos.",
        "recommendation": "Bom turno.",
    }
    body.update(overrides)
    return json.dumps(body)


class TestParseJsonContent:
    def test_strips_markdown_fence(self) -> None:
        content = '```json\n{"isValid": true}\n```'
        assert parse_json_content(content) == {"isValid": True}

    def test_rejects_non_object(self) -> None:
        with pytest.raises(GatewaySchemaError):
            parse_json_content("[1, 2]")

    def test_rejects_invalid_json(self) -> None:
        with pytest.raises(GatewaySchemaError):
            parse_json_content("not json")


class TestValidateFace:
    @pytest.mark.asyncio
    async def test_accepts_face(self) -> None:
        client = MockGPTClient('{"isValid": true, "message": "ok"}')

        validation = await _gateway(client).validate_face(SAMPLE_IMAGE)

        assert validation.is_valid is True
        assert validation.failure is None
        image_url = client.calls[0][1]["content"][1]["image_url"]["url"]
        assert image_url == SAMPLE_IMAGE

    @pytest.mark.asyncio
    async def test_raw_base64_gets_data_url_prefix(self) -> None:
        client = MockGPTClient('{"isValid": false, "message": "wall"}')

        validation = await _gateway(client).validate_face("QUJD")

        assert validation.is_valid is False
        assert validation.failure is None
        assert validation.message == "wall"
        image_url = client.calls[0][1]["content"][1]["image_url"]["url"]
        assert image_url == "data:image/jpeg;base64,QUJD"

    @pytest.mark.asyncio
    async def test_missing_key_fails_closed(self) -> None:
        client = MockGPTClient(GPTConfigurationError("OPENAI_API_KEY not configured"))

        validation = await _gateway(client).validate_face(SAMPLE_IMAGE, Language.EN)

        assert validation.is_valid is False
        assert validation.message == "AI Connection Error. Check Key."
        assert validation.failure is not None
        assert validation.failure.kind == GatewayFailureKind.CONFIGURATION

    @pytest.mark.asyncio
    async def test_non_boolean_flag_is_schema_failure(self) -> None:
        client = MockGPTClient('{"isValid": "yes"}')

        validation = await _gateway(client).validate_face(SAMPLE_IMAGE)

        assert validation.is_valid is False
        assert validation.failure is not None
        assert validation.failure.kind == GatewayFailureKind.SCHEMA

    @pytest.mark.asyncio
    async def test_deadline_exceeded_is_timeout_failure(self) -> None:
        client = MockGPTClient('{"isValid": true}', delay=0.5)

        validation = await _gateway(client, deadline=0.05).validate_face(SAMPLE_IMAGE)

        assert validation.is_valid is False
        assert validation.failure is not None
        assert validation.failure.kind == GatewayFailureKind.TIMEOUT


class TestAnalyzeFatigue:
    @pytest.mark.asyncio
    async def test_tier_computed_locally(self) -> None:
        client = MockGPTClient(_fatigue_reply(visualFatigue=80))
        survey = sample_survey(
            sleep_quality=5, energy_level=10, focus_level=10, motivation_level=10, feeling_safe=10
        )

        outcome = await _gateway(client).analyze_fatigue(SAMPLE_IMAGE, survey, Language.PT)

        assert outcome.ok
        assert outcome.assessment is not None
        assert outcome.assessment.override_applied is True
        assert outcome.result.risk_level == RiskLevel.HIGH
        assert outcome.result.fatigue_level == pytest.approx(64.0)
        assert outcome.result.explanation == "Olhos atentos."

    @pytest.mark.asyncio
    async def test_prompt_names_requested_language(self) -> None:
        client = MockGPTClient(_fatigue_reply())

        await _gateway(client).analyze_fatigue(SAMPLE_IMAGE, sample_survey(), Language.ES)

        system_prompt = client.calls[0][0]["content"]
        assert "Spanish" in system_prompt
        assert "Energy: 8/10" in client.calls[0][1]["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_acted_expression_is_invalid(self) -> None:
        client = MockGPTClient(_fatigue_reply(expressionValid=False, visualFatigue=90))

        outcome = await _gateway(client).analyze_fatigue(SAMPLE_IMAGE, sample_survey())

        assert outcome.ok
        assert outcome.result.risk_level == RiskLevel.INVALID
        assert outcome.result.fatigue_level == 0.0

    @pytest.mark.asyncio
    async def test_api_error_returns_localized_fallback(self) -> None:
        client = MockGPTClient(GPTAPIError("API error 401", status_code=401))

        outcome = await _gateway(client).analyze_fatigue(
            SAMPLE_IMAGE, sample_survey(), Language.EN
        )

        assert not outcome.ok
        assert outcome.failure is not None
        assert outcome.failure.kind == GatewayFailureKind.TRANSPORT
        assert outcome.result.risk_level == RiskLevel.INVALID
        assert outcome.result.fatigue_level == 0
        assert outcome.result.explanation == "AI connection error."
        assert outcome.result.recommendation == "Try again later."

    @pytest.mark.asyncio
    async def test_out_of_range_fatigue_is_schema_failure(self) -> None:
        client = MockGPTClient(_fatigue_reply(visualFatigue=140))

        outcome = await _gateway(client).analyze_fatigue(
            SAMPLE_IMAGE, sample_survey(), Language.PT
        )

        assert outcome.failure is not None
        assert outcome.failure.kind == GatewayFailureKind.SCHEMA
        assert outcome.result.explanation == "Erro na conexão com IA ou chave inválida."

    @pytest.mark.asyncio
    async def test_missing_fields_is_schema_failure(self) -> None:
        client = MockGPTClient('{"visualFatigue": 20}')

        outcome = await _gateway(client).analyze_fatigue(SAMPLE_IMAGE, sample_survey())

        assert outcome.failure is not None
        assert outcome.failure.kind == GatewayFailureKind.SCHEMA
        assert outcome.result.risk_level == RiskLevel.INVALID

"""
Tests for generative reply parsing, the fallible attempt wrapper and the
OpenAI completion client.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError

from fakes import FakeGenerativeClient
from kronos.core.exceptions import GenerationError
from kronos.scoring.generative import Err, FailureKind, Ok, attempt_structured
from kronos.scoring.schemas import AssetClass, ScenarioId
from kronos.services.openai.config import OpenAISettings, is_reasoning_model
from kronos.services.openai.generate import OpenAICompletionClient
from kronos.services.openai.schemas import (
    ScenarioClassificationOutput,
    TickerClassificationOutput,
)
from kronos.services.openai.validation import (
    OutputParseError,
    extract_json_object,
    find_json_object,
    parse_model,
)


# =============================================================================
# JSON Extraction
# =============================================================================


class TestExtractJson:
    """Tests for pulling JSON out of model replies."""

    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_fenced_block(self):
        text = 'Here you go:\n```json\n{"assetClass": "gold"}\n```\nThanks'
        assert extract_json_object(text) == {"assetClass": "gold"}

    def test_object_wrapped_in_prose(self):
        assert extract_json_object('Sure! {"x": "y"} Hope that helps.') == {"x": "y"}

    def test_braces_inside_strings(self):
        text = '{"reasoning": "uses {curly} braces", "n": 2}'
        assert find_json_object(text) == text

    def test_trailing_commas_tolerated(self):
        assert extract_json_object('{"a": [1, 2,], "b": 3,}') == {"a": [1, 2], "b": 3}

    @pytest.mark.parametrize(
        "text",
        ["", "   ", "no json here", '{"a": 1', '{"a": }'],
    )
    def test_unusable_replies(self, text):
        with pytest.raises(OutputParseError):
            extract_json_object(text)


class TestParseModel:
    """Tests for strict schema parsing."""

    def test_valid_ticker_reply(self):
        parsed = parse_model(
            '{"assetClass": "long-treasuries", "confidence": 0.8, "reasoning": "20+ yr"}',
            TickerClassificationOutput,
        )
        assert parsed.asset_class == AssetClass.LONG_TREASURIES

    def test_out_of_range_confidence(self):
        with pytest.raises(OutputParseError) as exc_info:
            parse_model(
                '{"assetClass": "gold", "confidence": 1.4, "reasoning": "x"}',
                TickerClassificationOutput,
            )
        assert "confidence" in str(exc_info.value)

    def test_extra_keys_ignored(self):
        parsed = parse_model(
            '{"scenarioId": "cash-vs-bonds", "confidence": 0.6, "reasoning": "rates", "note": "x"}',
            ScenarioClassificationOutput,
        )
        assert parsed.scenario_id == ScenarioId.CASH_VS_BONDS
        assert parsed.alternative_scenarios == []


# =============================================================================
# Attempt Wrapper
# =============================================================================


class TestAttemptStructured:
    """Tests for attempt_structured failure kinds."""

    @pytest.mark.asyncio
    async def test_ok(self):
        client = FakeGenerativeClient('{"assetClass": "cash", "confidence": 0.9, "reasoning": "T-bills"}')
        outcome = await attempt_structured(client, "SGOV", TickerClassificationOutput)
        assert isinstance(outcome, Ok)
        assert outcome.value.asset_class == AssetClass.CASH

    @pytest.mark.asyncio
    async def test_no_client(self):
        outcome = await attempt_structured(None, "SGOV", TickerClassificationOutput)
        assert isinstance(outcome, Err)
        assert outcome.failure.kind == FailureKind.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_provider_error(self):
        client = FakeGenerativeClient(GenerationError("rate limited"))
        outcome = await attempt_structured(client, "SGOV", TickerClassificationOutput)
        assert outcome.failure.kind == FailureKind.PROVIDER_ERROR
        assert "rate limited" in str(outcome.failure)

    @pytest.mark.asyncio
    async def test_malformed(self):
        client = FakeGenerativeClient("cash, probably")
        outcome = await attempt_structured(client, "SGOV", TickerClassificationOutput)
        assert outcome.failure.kind == FailureKind.MALFORMED


# =============================================================================
# OpenAI Client
# =============================================================================


def _response(content: str | None, refusal: str | None = None) -> SimpleNamespace:
    message = SimpleNamespace(content=content, refusal=refusal)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason="stop")],
        usage=SimpleNamespace(total_tokens=120),
    )


def _manager(create: AsyncMock, model: str = "gpt-4o-mini") -> MagicMock:
    sdk = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    manager = MagicMock()
    manager.settings = OpenAISettings(_env_file=None, api_key="sk-test", default_model=model)
    manager.get_client = AsyncMock(return_value=sdk)
    manager.is_configured = True
    manager.is_circuit_open.return_value = False
    return manager


class TestOpenAICompletionClient:
    """Tests for OpenAICompletionClient with the SDK mocked."""

    @pytest.mark.asyncio
    async def test_returns_content_in_json_mode(self):
        create = AsyncMock(return_value=_response('{"ok": true}'))
        manager = _manager(create)
        client = OpenAICompletionClient(manager)

        text = await client.complete("prompt", system="sys", max_tokens=200)

        assert text == '{"ok": true}'
        kwargs = create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["max_tokens"] == 200
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
        manager.record_success.assert_called_once()

    @pytest.mark.asyncio
    async def test_reasoning_models_use_completion_tokens(self):
        create = AsyncMock(return_value=_response('{"ok": true}'))
        client = OpenAICompletionClient(_manager(create, model="o3-mini"))

        await client.complete("prompt")

        kwargs = create.call_args.kwargs
        assert kwargs["max_completion_tokens"] == 1000
        assert "temperature" not in kwargs

    @pytest.mark.asyncio
    async def test_api_error_recorded(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        create = AsyncMock(side_effect=APIConnectionError(request=request))
        manager = _manager(create)

        with pytest.raises(GenerationError):
            await OpenAICompletionClient(manager).complete("prompt")
        manager.record_failure.assert_called_once()

    @pytest.mark.asyncio
    async def test_empty_output_is_error(self):
        manager = _manager(AsyncMock(return_value=_response("  ")))
        with pytest.raises(GenerationError):
            await OpenAICompletionClient(manager).complete("prompt")

    @pytest.mark.asyncio
    async def test_refusal_is_error(self):
        manager = _manager(AsyncMock(return_value=_response(None, refusal="cannot help")))
        with pytest.raises(GenerationError) as exc_info:
            await OpenAICompletionClient(manager).complete("prompt")
        assert "cannot help" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unconfigured_client(self):
        manager = _manager(AsyncMock())
        manager.get_client = AsyncMock(return_value=None)
        with pytest.raises(GenerationError):
            await OpenAICompletionClient(manager).complete("prompt")

    def test_availability_follows_manager(self):
        manager = _manager(AsyncMock())
        client = OpenAICompletionClient(manager)
        assert client.is_available()

        manager.is_circuit_open.return_value = True
        assert not client.is_available()

    @pytest.mark.parametrize(
        "model,expected",
        [("gpt-4o-mini", False), ("gpt-5-mini", True), ("o1-preview", True), ("o3", True)],
    )
    def test_is_reasoning_model(self, model, expected):
        assert is_reasoning_model(model) is expected

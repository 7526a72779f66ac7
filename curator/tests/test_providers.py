"""Tests for provider adapters with mocked SDK clients. No network access."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import openai
import pytest

from curator.agents.errors import ErrorCode, ProviderAttemptError
from curator.agents.providers.anthropic import AnthropicProvider
from curator.agents.providers.base import (
    AI_MODELS,
    FALLBACK_ORDER,
    BackendFailure,
    SelectionRequest,
    classify_failure,
    get_next_fallback,
)
from curator.agents.providers.cerebras import CerebrasProvider
from curator.agents.providers.registry import (
    get_available_providers,
    get_first_available_provider,
    get_provider,
    list_provider_info,
)
from curator.config import Settings
from curator.schemas.pydantic import SelectionConfig

JD = "Senior Platform Engineer. Kubernetes, Python, and on-call leadership experience required."

_REQUEST = httpx.Request("POST", "https://api.example.test/v1/chat")


@pytest.fixture
def request_for(compendium):
    return SelectionRequest(job_description=JD, compendium=compendium, config=SelectionConfig(min_bullets=6))


def _openai_response(text: str | None, total_tokens: int = 321):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


def _anthropic_response(text: str):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=200, output_tokens=50),
    )


def _cerebras(settings: Settings, create: AsyncMock) -> CerebrasProvider:
    client = MagicMock()
    client.chat.completions.create = create
    return CerebrasProvider(AI_MODELS["cerebras-gpt"], settings, client=client)


def _claude(settings: Settings, create: AsyncMock) -> AnthropicProvider:
    client = MagicMock()
    client.messages.create = create
    return AnthropicProvider(AI_MODELS["claude-haiku"], settings, client=client)


# ── Model table and fallback order ──


class TestModelTable:
    def test_fallback_order(self):
        assert FALLBACK_ORDER == ("cerebras-gpt", "claude-haiku", "cerebras-llama", "claude-sonnet")

    def test_next_fallback(self):
        assert get_next_fallback("cerebras-gpt") == "claude-haiku"
        assert get_next_fallback("cerebras-llama") == "claude-sonnet"
        assert get_next_fallback("claude-sonnet") is None
        assert get_next_fallback("gpt-5") is None

    def test_every_fallback_has_a_model(self):
        assert set(FALLBACK_ORDER) == set(AI_MODELS)


class TestClassifyFailure:
    @pytest.mark.parametrize("status", [401, 403, 429, 500, 502, 503, 504])
    def test_down_statuses(self, status):
        error = classify_failure(BackendFailure(kind="status", status=status, message="x"))
        assert error.code is ErrorCode.PROVIDER_DOWN

    @pytest.mark.parametrize("status", [400, 404, 422])
    def test_other_statuses(self, status):
        error = classify_failure(BackendFailure(kind="status", status=status, message="x"))
        assert error.code is ErrorCode.PROVIDER_ERROR

    @pytest.mark.parametrize("kind", ["connection", "timeout", "credentials"])
    def test_transport_failures_are_down(self, kind):
        assert classify_failure(BackendFailure(kind=kind, message="x")).code is ErrorCode.PROVIDER_DOWN

    def test_unknown_is_provider_error(self):
        assert classify_failure(BackendFailure(kind="unknown", message="x")).code is ErrorCode.PROVIDER_ERROR


# ── Cerebras ──


class TestCerebrasProvider:
    @pytest.mark.asyncio
    async def test_success(self, test_settings, request_for, valid_response):
        create = AsyncMock(return_value=_openai_response(valid_response))
        result = await _cerebras(test_settings, create).select(request_for)

        assert result.provider == "cerebras-gpt"
        assert result.tokens_used == 321
        assert len(result.bullets) == 6
        assert result.job_title == "Senior Platform Engineer"

        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-oss-120b"
        assert kwargs["temperature"] == 0.3
        assert kwargs["messages"][0]["role"] == "system"
        assert JD in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_retry_feedback_reaches_prompt(self, test_settings, request_for, valid_response):
        create = AsyncMock(return_value=_openai_response(valid_response))
        request_for.retry_feedback = "error[NO_JSON_FOUND]: No JSON object found in AI response"
        await _cerebras(test_settings, create).select(request_for)
        assert "PREVIOUS RESPONSE HAD ERRORS" in create.call_args.kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_missing_key_is_provider_down(self, request_for):
        create = AsyncMock()
        provider = _cerebras(Settings(CEREBRAS_API_KEY=""), create)
        assert not provider.is_available()
        with pytest.raises(ProviderAttemptError) as exc_info:
            await provider.select(request_for)
        assert exc_info.value.error.code is ErrorCode.PROVIDER_DOWN
        create.assert_not_called()

    @pytest.mark.asyncio
    async def test_status_503_is_provider_down(self, test_settings, request_for):
        response = httpx.Response(503, request=_REQUEST)
        create = AsyncMock(side_effect=openai.APIStatusError("Service unavailable", response=response, body=None))
        with pytest.raises(ProviderAttemptError) as exc_info:
            await _cerebras(test_settings, create).select(request_for)
        assert exc_info.value.error.code is ErrorCode.PROVIDER_DOWN
        assert exc_info.value.provider == "cerebras-gpt"

    @pytest.mark.asyncio
    async def test_status_400_is_provider_error(self, test_settings, request_for):
        response = httpx.Response(400, request=_REQUEST)
        create = AsyncMock(side_effect=openai.APIStatusError("Bad request", response=response, body=None))
        with pytest.raises(ProviderAttemptError) as exc_info:
            await _cerebras(test_settings, create).select(request_for)
        assert exc_info.value.error.code is ErrorCode.PROVIDER_ERROR

    @pytest.mark.asyncio
    async def test_connection_error_is_provider_down(self, test_settings, request_for):
        create = AsyncMock(side_effect=openai.APIConnectionError(request=_REQUEST))
        with pytest.raises(ProviderAttemptError) as exc_info:
            await _cerebras(test_settings, create).select(request_for)
        assert exc_info.value.error.code is ErrorCode.PROVIDER_DOWN

    @pytest.mark.asyncio
    async def test_timeout_is_provider_down(self, request_for):
        async def never_returns(**kwargs):
            await asyncio.sleep(10)

        settings = Settings(CEREBRAS_API_KEY="k", provider_timeout_s=0.01)
        with pytest.raises(ProviderAttemptError) as exc_info:
            await _cerebras(settings, AsyncMock(side_effect=never_returns)).select(request_for)
        assert exc_info.value.error.code is ErrorCode.PROVIDER_DOWN
        assert "timed out" in exc_info.value.error.message

    @pytest.mark.asyncio
    async def test_empty_completion(self, test_settings, request_for):
        create = AsyncMock(return_value=_openai_response(None))
        with pytest.raises(ProviderAttemptError) as exc_info:
            await _cerebras(test_settings, create).select(request_for)
        assert exc_info.value.error.code is ErrorCode.NO_JSON_FOUND

    @pytest.mark.asyncio
    async def test_parse_error_passes_through(self, test_settings, request_for, make_response):
        create = AsyncMock(return_value=_openai_response(make_response({"bullet-a1": 0.9})))
        with pytest.raises(ProviderAttemptError) as exc_info:
            await _cerebras(test_settings, create).select(request_for)
        assert exc_info.value.error.code is ErrorCode.WRONG_BULLET_COUNT


# ── Anthropic ──


class TestAnthropicProvider:
    @pytest.mark.asyncio
    async def test_success(self, test_settings, request_for, valid_response):
        create = AsyncMock(return_value=_anthropic_response(valid_response))
        result = await _claude(test_settings, create).select(request_for)

        assert result.provider == "claude-haiku"
        assert result.tokens_used == 250
        assert len(result.bullets) == 6

        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "claude-3-5-haiku-20241022"
        assert "Resume Bullet Scoring Expert" in kwargs["system"]
        assert kwargs["messages"][0]["role"] == "user"

    @pytest.mark.asyncio
    async def test_skips_non_text_blocks(self, test_settings, request_for, valid_response):
        response = _anthropic_response(valid_response)
        response.content.insert(0, SimpleNamespace(type="thinking", thinking="..."))
        result = await _claude(test_settings, AsyncMock(return_value=response)).select(request_for)
        assert len(result.bullets) == 6

    @pytest.mark.asyncio
    async def test_rate_limited_is_provider_down(self, test_settings, request_for):
        response = httpx.Response(429, request=_REQUEST)
        create = AsyncMock(side_effect=anthropic.APIStatusError("Too many requests", response=response, body=None))
        with pytest.raises(ProviderAttemptError) as exc_info:
            await _claude(test_settings, create).select(request_for)
        assert exc_info.value.error.code is ErrorCode.PROVIDER_DOWN

    @pytest.mark.asyncio
    async def test_missing_key(self, request_for):
        provider = _claude(Settings(ANTHROPIC_API_KEY=""), AsyncMock())
        with pytest.raises(ProviderAttemptError) as exc_info:
            await provider.select(request_for)
        assert exc_info.value.error.code is ErrorCode.PROVIDER_DOWN


# ── Registry ──


class TestRegistry:
    def test_get_provider_types(self, test_settings):
        assert isinstance(get_provider("cerebras-llama", test_settings), CerebrasProvider)
        assert isinstance(get_provider("claude-sonnet", test_settings), AnthropicProvider)

    def test_unknown_provider(self, test_settings):
        with pytest.raises(KeyError):
            get_provider("gpt-5", test_settings)

    def test_available_follows_credentials(self):
        settings = Settings(CEREBRAS_API_KEY="", ANTHROPIC_API_KEY="key")
        assert get_available_providers(settings) == ["claude-haiku", "claude-sonnet"]
        assert get_first_available_provider(settings) == "claude-haiku"

    def test_none_available(self):
        assert get_first_available_provider(Settings(CEREBRAS_API_KEY="", ANTHROPIC_API_KEY="")) is None

    def test_preferred_first(self, test_settings):
        assert get_first_available_provider(test_settings, preferred="claude-sonnet") == "claude-sonnet"

    def test_unavailable_preferred_skipped(self):
        settings = Settings(CEREBRAS_API_KEY="key", ANTHROPIC_API_KEY="")
        assert get_first_available_provider(settings, preferred="claude-sonnet") == "cerebras-gpt"

    def test_uses_injected_factory(self, scripted_providers):
        register, factory = scripted_providers
        register("cerebras-llama", [])
        assert get_first_available_provider(provider_factory=factory) == "cerebras-llama"

    def test_provider_info(self):
        info = {p.name: p for p in list_provider_info(Settings(CEREBRAS_API_KEY="key", ANTHROPIC_API_KEY=""))}
        assert set(info) == set(AI_MODELS)
        assert info["cerebras-gpt"].available
        assert info["cerebras-gpt"].cost == "free"
        assert not info["claude-sonnet"].available
        assert info["claude-sonnet"].label == "Claude Sonnet 4"

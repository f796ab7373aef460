"""Tests for the OpenAI analysis client."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from cofacilitator.errors import ConfigurationError, UpstreamErrorKind, UpstreamFailure
from cofacilitator.prompts import OutputMode
from cofacilitator.providers.openai import (
    GenerationConfig,
    OpenAIAnalysisClient,
    classify_error,
)

_CONFIG = GenerationConfig(
    model="gpt-4o",
    temperature=0.3,
    max_tokens=800,
    output_mode=OutputMode.TEXT,
    timeout_seconds=5,
)

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status, code=None):
    body = {"message": "boom", "code": code} if code else None
    return cls("boom", response=httpx.Response(status, request=_REQUEST), body=body)


def _completion(content="Grounded answer", total_tokens=57):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


def _mock_sdk(create):
    sdk = MagicMock()
    sdk.chat.completions.create = create
    return sdk


# ---------------------------------------------------------------------------
# classify_error
# ---------------------------------------------------------------------------


class TestClassifyError:
    def test_authentication(self):
        exc = _status_error(openai.AuthenticationError, 401)
        assert classify_error(exc) is UpstreamErrorKind.AUTHENTICATION

    def test_invalid_api_key_code(self):
        exc = _status_error(openai.BadRequestError, 400, code="invalid_api_key")
        assert classify_error(exc) is UpstreamErrorKind.AUTHENTICATION

    def test_rate_limited(self):
        exc = _status_error(openai.RateLimitError, 429)
        assert classify_error(exc) is UpstreamErrorKind.RATE_LIMITED

    def test_quota_is_distinct_from_rate_limit(self):
        exc = _status_error(openai.RateLimitError, 429, code="insufficient_quota")
        assert classify_error(exc) is UpstreamErrorKind.QUOTA_EXCEEDED

    def test_timeout(self):
        exc = openai.APITimeoutError(request=_REQUEST)
        assert classify_error(exc) is UpstreamErrorKind.TIMEOUT

    def test_connection(self):
        exc = openai.APIConnectionError(request=_REQUEST)
        assert classify_error(exc) is UpstreamErrorKind.TRANSPORT

    def test_other_status(self):
        exc = _status_error(openai.InternalServerError, 500)
        assert classify_error(exc) is UpstreamErrorKind.PROVIDER_ERROR

    def test_message_text_is_not_inspected(self):
        exc = openai.APIStatusError(
            "HTTP 401 429 unauthorized",
            response=httpx.Response(502, request=_REQUEST),
            body=None,
        )
        assert classify_error(exc) is UpstreamErrorKind.PROVIDER_ERROR


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


class TestGenerate:
    @pytest.mark.asyncio
    async def test_missing_key_is_configuration_error(self):
        with patch("cofacilitator.providers.openai.AsyncOpenAI") as sdk_cls:
            client = OpenAIAnalysisClient(api_key_resolver=lambda: None)
            with pytest.raises(ConfigurationError):
                await client.generate("p", "s", _CONFIG)
        sdk_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_successful_call(self):
        create = AsyncMock(return_value=_completion())
        with patch(
            "cofacilitator.providers.openai.AsyncOpenAI", return_value=_mock_sdk(create)
        ) as sdk_cls:
            client = OpenAIAnalysisClient(api_key_resolver=lambda: "sk-test")
            result = await client.generate("the prompt", "the system", _CONFIG)

        assert result.text == "Grounded answer"
        assert result.tokens_used == 57
        sdk_cls.assert_called_once_with(api_key="sk-test", max_retries=0, timeout=5)
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 800
        assert kwargs["response_format"] == {"type": "text"}
        assert kwargs["messages"] == [
            {"role": "system", "content": "the system"},
            {"role": "user", "content": "the prompt"},
        ]

    @pytest.mark.asyncio
    async def test_json_mode_requested(self):
        create = AsyncMock(return_value=_completion("{}"))
        config = GenerationConfig("gpt-4o-mini", 0.7, 400, OutputMode.JSON)
        with patch(
            "cofacilitator.providers.openai.AsyncOpenAI", return_value=_mock_sdk(create)
        ):
            client = OpenAIAnalysisClient(api_key_resolver=lambda: "sk-test")
            await client.generate("p", "s", config)
        assert create.call_args.kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_client_reused_for_same_key(self):
        create = AsyncMock(return_value=_completion())
        with patch(
            "cofacilitator.providers.openai.AsyncOpenAI", return_value=_mock_sdk(create)
        ) as sdk_cls:
            client = OpenAIAnalysisClient(api_key_resolver=lambda: "sk-test")
            await client.generate("p", "s", _CONFIG)
            await client.generate("p", "s", _CONFIG)
        assert sdk_cls.call_count == 1
        assert create.await_count == 2

    @pytest.mark.asyncio
    async def test_no_choices_and_no_usage(self):
        create = AsyncMock(return_value=SimpleNamespace(choices=[], usage=None))
        with patch(
            "cofacilitator.providers.openai.AsyncOpenAI", return_value=_mock_sdk(create)
        ):
            client = OpenAIAnalysisClient(api_key_resolver=lambda: "sk-test")
            result = await client.generate("p", "s", _CONFIG)
        assert result.text is None
        assert result.tokens_used == 0

    @pytest.mark.asyncio
    async def test_provider_error_is_wrapped_once(self):
        create = AsyncMock(side_effect=_status_error(openai.RateLimitError, 429))
        with patch(
            "cofacilitator.providers.openai.AsyncOpenAI", return_value=_mock_sdk(create)
        ):
            client = OpenAIAnalysisClient(api_key_resolver=lambda: "sk-test")
            with pytest.raises(UpstreamFailure) as exc_info:
                await client.generate("p", "s", _CONFIG)
        assert exc_info.value.kind is UpstreamErrorKind.RATE_LIMITED
        assert create.await_count == 1

    @pytest.mark.asyncio
    async def test_deadline_is_timeout_failure(self):
        async def _slow(**kwargs):
            await asyncio.sleep(5)

        config = GenerationConfig("gpt-4o", 0.3, 800, timeout_seconds=0.01)
        with patch(
            "cofacilitator.providers.openai.AsyncOpenAI",
            return_value=_mock_sdk(AsyncMock(side_effect=_slow)),
        ):
            client = OpenAIAnalysisClient(api_key_resolver=lambda: "sk-test")
            with pytest.raises(UpstreamFailure) as exc_info:
                await client.generate("p", "s", config)
        assert exc_info.value.kind is UpstreamErrorKind.TIMEOUT

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import openai
from openai import AsyncOpenAI

from ..config import API_KEY_ENV_VARS, resolve_api_key
from ..errors import ConfigurationError, UpstreamErrorKind, UpstreamFailure
from ..prompts import OutputMode

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class GenerationConfig:
    model: str
    temperature: float
    max_tokens: int
    output_mode: OutputMode = OutputMode.TEXT
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True)
class Completion:
    text: Optional[str]
    tokens_used: int = 0


def classify_error(exc: openai.APIError) -> UpstreamErrorKind:
    """Map an SDK exception to an error kind using its type and error code."""
    code = getattr(exc, "code", None)
    if isinstance(exc, openai.APITimeoutError):
        return UpstreamErrorKind.TIMEOUT
    if isinstance(exc, openai.APIConnectionError):
        return UpstreamErrorKind.TRANSPORT
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return UpstreamErrorKind.AUTHENTICATION
    if code == "invalid_api_key":
        return UpstreamErrorKind.AUTHENTICATION
    if code == "insufficient_quota":
        return UpstreamErrorKind.QUOTA_EXCEEDED
    if isinstance(exc, openai.RateLimitError):
        return UpstreamErrorKind.RATE_LIMITED
    return UpstreamErrorKind.PROVIDER_ERROR


class OpenAIAnalysisClient:
    """Single-attempt chat completion against the OpenAI API.

    The SDK's built-in retries are disabled; a failed call surfaces as an
    UpstreamFailure and the caller decides whether to re-request.
    """

    def __init__(
        self,
        api_key_resolver: Callable[[], Optional[str]] = resolve_api_key,
    ) -> None:
        self._resolve_key = api_key_resolver
        self._client: Optional[AsyncOpenAI] = None
        self._client_key: Optional[str] = None

    def _get_client(self, timeout_seconds: float) -> AsyncOpenAI:
        api_key = self._resolve_key()
        if not api_key:
            raise ConfigurationError(
                "no model-provider API key found in " + ", ".join(API_KEY_ENV_VARS)
            )
        if self._client is None or self._client_key != api_key:
            self._client = AsyncOpenAI(
                api_key=api_key, max_retries=0, timeout=timeout_seconds
            )
            self._client_key = api_key
        return self._client

    async def generate(
        self,
        prompt: str,
        system_instruction: str,
        config: GenerationConfig,
    ) -> Completion:
        client = self._get_client(config.timeout_seconds)
        try:
            async with asyncio.timeout(config.timeout_seconds):
                response = await client.chat.completions.create(
                    model=config.model,
                    messages=[
                        {"role": "system", "content": system_instruction},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=config.temperature,
                    max_tokens=config.max_tokens,
                    response_format={"type": config.output_mode.value},
                )
        except TimeoutError as exc:
            raise UpstreamFailure(
                UpstreamErrorKind.TIMEOUT,
                f"{config.model} call timed out after {config.timeout_seconds}s",
            ) from exc
        except openai.APIError as exc:
            kind = classify_error(exc)
            raise UpstreamFailure(kind, f"{config.model} call failed: {exc}") from exc

        text = None
        if response.choices:
            text = response.choices[0].message.content
        usage = getattr(response, "usage", None)
        tokens = getattr(usage, "total_tokens", None) or 0
        return Completion(text=text, tokens_used=tokens)

"""Analysis request pipeline.

validate -> rate limit -> build prompt -> model call -> shape. Steps run
strictly in order; the model call is the only await.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol, Type

from pydantic import BaseModel

from .errors import RateLimitExceeded, UpstreamErrorKind, UpstreamFailure
from .profiles import AnalysisProfile
from .prompts import OutputMode, build_prompt, system_instruction
from .providers.openai import Completion, GenerationConfig, OpenAIAnalysisClient
from .rate_limit import FixedWindowRateLimiter
from .schemas import AnalysisRequest, now_iso
from .shaping import looks_like_markup, shape_json_result, shape_text_result
from .validation import RequestValidator

logger = logging.getLogger(__name__)


class AnalysisClient(Protocol):
    async def generate(
        self, prompt: str, system_instruction: str, config: GenerationConfig
    ) -> Completion: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProfiledService:
    """One route's validator, rate limiter and model client, driven by its profile."""

    request_model: Type[BaseModel] = AnalysisRequest

    def __init__(
        self,
        profile: AnalysisProfile,
        *,
        rate_limiter: Optional[FixedWindowRateLimiter] = None,
        client: Optional[AnalysisClient] = None,
        validator: Optional[RequestValidator] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.profile = profile
        self.rate_limiter = rate_limiter or FixedWindowRateLimiter(
            profile.rate_limit_per_hour
        )
        self.client = client or OpenAIAnalysisClient()
        self.validator = validator or RequestValidator(model=self.request_model)
        self._clock = clock

    async def handle(self, payload: Any) -> Dict[str, Any]:
        raise NotImplementedError

    def _check_rate_limit(self, client_id: str) -> None:
        if not self.rate_limiter.admit(client_id):
            retry_after = self.rate_limiter.retry_after(client_id)
            logger.warning(
                f"[{self.profile.name}] rate limit exceeded for client "
                f"{client_id!r}, retry after {retry_after}s"
            )
            raise RateLimitExceeded(client_id, retry_after)

    async def _generate(self, prompt: str, instruction: str) -> Completion:
        completion = await self.client.generate(
            prompt, instruction, self.profile.generation
        )
        if not (completion.text or "").strip():
            raise UpstreamFailure(
                UpstreamErrorKind.EMPTY_COMPLETION, "No response from AI model"
            )
        return completion

    def health(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "status": "healthy",
            "service": self.profile.service_label,
            "endpoint": self.profile.endpoint,
            "version": self.profile.version,
            "timestamp": now_iso(),
            "rateLimitPerHour": self.rate_limiter.ceiling,
            "trackedClients": len(self.rate_limiter),
        }
        if self.profile.features:
            payload["features"] = list(self.profile.features)
        return payload


class AnalysisService(ProfiledService):
    async def handle(self, payload: Any) -> Dict[str, Any]:
        return await self.analyze(payload)

    async def analyze(self, payload: Any) -> Dict[str, Any]:
        request = self.validator.validate(payload)
        self._check_rate_limit(request.client_id)

        logger.info(
            f"[{self.profile.name}] analysis request: topic={request.session_topic!r} "
            f"type={request.analysis_type.value} "
            f"transcript_length={request.transcript_length} "
            f"session_duration={request.session_duration}"
        )
        if looks_like_markup(request.transcript):
            logger.warning(f"[{self.profile.name}] transcript contains HTML/CSS markup")

        mode = self.profile.output_mode
        prompt = build_prompt(
            request.analysis_type, request.session_topic, request.transcript, mode
        )
        completion = await self._generate(prompt, system_instruction(mode))

        now = self._clock()
        if mode is OutputMode.JSON:
            result = shape_json_result(request, completion.text, now)
        else:
            result = shape_text_result(request, completion, now)

        logger.info(
            f"[{self.profile.name}] analysis success: type={request.analysis_type.value} "
            f"response_length={len(completion.text)} tokens_used={completion.tokens_used}"
        )
        return result

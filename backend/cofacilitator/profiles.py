"""Route profiles.

Every route runs the same validate, rate limit and model call steps.
Everything that differs between them (model, sampling, output mode, rate
ceiling, status mapping) lives in an AnalysisProfile.
"""

from dataclasses import dataclass, field
from typing import Mapping, Tuple

from .config import Settings
from .errors import (
    AnalysisError,
    ConfigurationError,
    RateLimitExceeded,
    RequestValidationFailure,
    UpstreamErrorKind,
    UpstreamFailure,
)
from .prompts import OutputMode
from .providers.openai import GenerationConfig


@dataclass(frozen=True)
class AnalysisProfile:
    name: str
    endpoint: str
    generation: GenerationConfig
    rate_limit_per_hour: int
    version: str
    service_label: str
    config_error_status: int = 500
    upstream_statuses: Mapping[UpstreamErrorKind, int] = field(default_factory=dict)
    features: Tuple[str, ...] = ()

    @property
    def output_mode(self) -> OutputMode:
        return self.generation.output_mode

    def status_for(self, exc: AnalysisError) -> int:
        if isinstance(exc, RequestValidationFailure):
            return 400
        if isinstance(exc, RateLimitExceeded):
            return 429
        if isinstance(exc, ConfigurationError):
            return self.config_error_status
        if isinstance(exc, UpstreamFailure):
            return self.upstream_statuses.get(exc.kind, 500)
        return 500


def live_profile(settings: Settings) -> AnalysisProfile:
    return AnalysisProfile(
        name="live",
        endpoint="/analyze-live",
        generation=GenerationConfig(
            model="gpt-4o",
            temperature=0.3,
            max_tokens=800,
            output_mode=OutputMode.TEXT,
            timeout_seconds=settings.model_timeout_seconds,
        ),
        rate_limit_per_hour=settings.live_rate_limit_per_hour,
        version="1.0.0",
        service_label="AI Live Analysis API",
        config_error_status=500,
        upstream_statuses={UpstreamErrorKind.TIMEOUT: 504},
    )


def legacy_profile(settings: Settings) -> AnalysisProfile:
    return AnalysisProfile(
        name="legacy",
        endpoint="/analyze",
        generation=GenerationConfig(
            model="gpt-4o-mini",
            temperature=0.7,
            max_tokens=400,
            output_mode=OutputMode.JSON,
            timeout_seconds=settings.model_timeout_seconds,
        ),
        rate_limit_per_hour=settings.legacy_rate_limit_per_hour,
        version="2.0",
        service_label="AI Analysis API",
        config_error_status=503,
        upstream_statuses={
            UpstreamErrorKind.AUTHENTICATION: 401,
            UpstreamErrorKind.RATE_LIMITED: 429,
            UpstreamErrorKind.QUOTA_EXCEEDED: 503,
            UpstreamErrorKind.TIMEOUT: 504,
        },
        features=("strict-mode", "rate-limiting", "json-output", "hallucination-prevention"),
    )


def speaker_profile(settings: Settings) -> AnalysisProfile:
    return AnalysisProfile(
        name="speakers",
        endpoint="/identify-speakers",
        generation=GenerationConfig(
            model="gpt-4o",
            temperature=0.3,
            max_tokens=1500,
            output_mode=OutputMode.JSON,
            timeout_seconds=settings.model_timeout_seconds,
        ),
        rate_limit_per_hour=settings.speaker_rate_limit_per_hour,
        version="1.0.0",
        service_label="AI Speaker Identification API",
        config_error_status=500,
        upstream_statuses={UpstreamErrorKind.TIMEOUT: 504},
    )

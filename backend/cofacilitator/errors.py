"""Error taxonomy for the analysis pipeline.

Every failure a request can hit is one of these. HTTP status codes are not
fixed here: the active AnalysisProfile decides them, so the strict and legacy
routes can report the same failure differently.
"""

from enum import Enum
from typing import Any, Dict, List


class UpstreamErrorKind(str, Enum):
    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    EMPTY_COMPLETION = "empty_completion"
    INVALID_OUTPUT = "invalid_output"
    PROVIDER_ERROR = "provider_error"


class AnalysisError(Exception):
    """Base class for failures that are reported to the caller as JSON."""

    public_message = "AI analysis failed"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.public_message)


class RequestValidationFailure(AnalysisError):
    public_message = "Invalid request format"

    def __init__(self, issues: List[Dict[str, Any]]) -> None:
        super().__init__(f"{len(issues)} validation issue(s)")
        self.issues = issues


class RateLimitExceeded(AnalysisError):
    public_message = "Rate limit exceeded. Please wait before making another request."

    def __init__(self, client_id: str, retry_after: int) -> None:
        super().__init__(f"rate limit exceeded for client {client_id!r}")
        self.client_id = client_id
        self.retry_after = retry_after


class ConfigurationError(AnalysisError):
    public_message = "AI service not configured"


class UpstreamFailure(AnalysisError):
    def __init__(self, kind: UpstreamErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind

    @property
    def public_message(self) -> str:
        return _UPSTREAM_MESSAGES.get(self.kind, "AI analysis failed")


_UPSTREAM_MESSAGES = {
    UpstreamErrorKind.AUTHENTICATION: "Invalid API key",
    UpstreamErrorKind.RATE_LIMITED: "OpenAI rate limit exceeded",
    UpstreamErrorKind.QUOTA_EXCEEDED: "AI service quota exceeded. Please try again later.",
    UpstreamErrorKind.TIMEOUT: "AI analysis timed out",
    UpstreamErrorKind.EMPTY_COMPLETION: "No response from AI model",
    UpstreamErrorKind.INVALID_OUTPUT: "AI response could not be parsed",
}

"""Inbound payload validation.

Turns an untyped JSON body into a request model, or raises
RequestValidationFailure listing every violated constraint at once.
"""

import json
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from .errors import RequestValidationFailure
from .schemas import AnalysisRequest


def _issue(field: str, message: str, kind: str) -> Dict[str, str]:
    return {"field": field, "message": message, "type": kind}


def _issues_from(exc: ValidationError) -> List[Dict[str, str]]:
    issues = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "body"
        issues.append(_issue(field, err.get("msg", "invalid value"), err.get("type", "value_error")))
    return issues


def decode_body(raw: bytes) -> Any:
    """Decode a request body, treating malformed JSON as a validation failure."""
    try:
        return json.loads(raw or b"null")
    except (ValueError, UnicodeDecodeError) as exc:
        raise RequestValidationFailure(
            [_issue("body", f"Malformed JSON: {exc}", "json_invalid")]
        ) from exc


class RequestValidator:
    def __init__(
        self,
        max_transcript_chars: Optional[int] = None,
        model: Type[BaseModel] = AnalysisRequest,
    ) -> None:
        self.max_transcript_chars = max_transcript_chars
        self.model = model

    def validate(self, payload: Any) -> Any:
        if not isinstance(payload, dict):
            raise RequestValidationFailure(
                [_issue("body", "Request body must be a JSON object", "model_type")]
            )
        context = {"max_transcript_chars": self.max_transcript_chars}
        try:
            return self.model.model_validate(payload, context=context)
        except ValidationError as exc:
            raise RequestValidationFailure(_issues_from(exc)) from exc

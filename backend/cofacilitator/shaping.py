"""Deterministic response shaping for model output.

Turns raw completion text into the JSON returned to callers. Both shapers
always produce a JSON-serializable result, whatever the model sent back.

This module makes no network calls; it is pure post-processing.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .providers.openai import Completion
from .schemas import (
    MAX_SUGGESTIONS,
    SUGGESTION_TYPES,
    AnalysisRequest,
    AnalysisResult,
    LegacyMetadata,
    ResultMetadata,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Placeholder until confidence is derived from a real signal.
PLACEHOLDER_CONFIDENCE = 0.85
DEGRADED_CONFIDENCE = 0.5
PARSE_FAILED_ERROR = "Response parsing failed, returning raw content"

# Transcripts shorter than this are reported as hasContent=false.
_CONTENT_THRESHOLD = 50

_BULLET_MARKERS = ("-", "*", "•")
_MARKUP_PATTERN = re.compile(r"<div|class=|font-semibold|bg-purple", re.IGNORECASE)


def _reject_constant(name: str):
    # NaN/Infinity would make the response body invalid JSON.
    raise ValueError(f"non-standard JSON constant {name}")


def _iso(now: Optional[datetime]) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def parse_json_object(raw_text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse model output as a JSON object. None for anything else."""
    try:
        parsed = json.loads(raw_text, parse_constant=_reject_constant)
    except (TypeError, ValueError) as exc:
        logger.warning(f"Failed to parse AI response as JSON: {exc}")
        return None
    if not isinstance(parsed, dict):
        logger.warning(f"AI response is JSON {type(parsed).__name__}, not an object")
        return None
    return parsed


# ---------------------------------------------------------------------------
# 1. extract_suggestions
# ---------------------------------------------------------------------------


def extract_suggestions(text: str, limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Return bullet lines from text with the marker stripped, in order."""
    suggestions = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped.startswith(_BULLET_MARKERS):
            continue
        # "**Bold**" or "---" are emphasis and rules, not bullets.
        if len(stripped) > 1 and not stripped[1].isspace():
            continue
        item = stripped[1:].strip()
        if not item:
            continue
        suggestions.append(item)
        if len(suggestions) >= limit:
            break
    return suggestions


# ---------------------------------------------------------------------------
# 2. looks_like_markup
# ---------------------------------------------------------------------------


def looks_like_markup(text: Optional[str]) -> bool:
    """True if text carries HTML or CSS-class fragments from the display layer."""
    return bool(text) and _MARKUP_PATTERN.search(text) is not None


# ---------------------------------------------------------------------------
# 3. shape_text_result (strict)
# ---------------------------------------------------------------------------


def shape_text_result(
    request: AnalysisRequest,
    completion: Completion,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Wrap free-text model output into the strict AnalysisResult schema."""
    raw = completion.text or ""
    if looks_like_markup(raw):
        logger.warning("Model response contains HTML/CSS markup")

    suggestions = None
    if request.analysis_type in SUGGESTION_TYPES:
        suggestions = extract_suggestions(raw)

    result = AnalysisResult(
        analysis_type=request.analysis_type.value,
        content=raw.strip(),
        suggestions=suggestions,
        confidence=PLACEHOLDER_CONFIDENCE,
        metadata=ResultMetadata(
            tokens_used=max(completion.tokens_used, 0),
            timestamp=_iso(now),
            session_topic=request.session_topic,
            transcript_length=request.transcript_length,
        ),
    )
    return result.to_json_dict()


# ---------------------------------------------------------------------------
# 4. shape_json_result (legacy)
# ---------------------------------------------------------------------------


def shape_json_result(
    request: AnalysisRequest,
    raw_text: str,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Parse JSON-mode output and append metadata.

    Never raises. Output that is not a JSON object degrades to a raw-text
    envelope with a fixed lower confidence.
    """
    parsed = parse_json_object(raw_text)
    if parsed is None:
        return {
            "result": raw_text,
            "type": request.analysis_type.value,
            "confidence": DEGRADED_CONFIDENCE,
            "error": PARSE_FAILED_ERROR,
        }

    length = request.transcript_length
    parsed["metadata"] = LegacyMetadata(
        transcript_length=length,
        has_content=length > _CONTENT_THRESHOLD,
        timestamp=_iso(now),
    ).to_json_dict()
    return parsed

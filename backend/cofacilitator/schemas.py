from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime, timezone
from enum import Enum

TRANSCRIPT_PLACEHOLDER = "No conversation content captured yet."
ANONYMOUS_CLIENT_ID = "anonymous"
MAX_SUGGESTIONS = 5
MAX_TOPIC_CHARS = 500
MAX_CLIENT_ID_CHARS = 128
MAX_SPEAKER_ENTRIES = 500


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AnalysisType(str, Enum):
    INSIGHTS = "insights"
    SYNTHESIS = "synthesis"
    FOLLOWUP = "followup"
    CROSS_REFERENCE = "cross_reference"
    FACILITATION = "facilitation"


# Only these types carry a suggestions list in the strict result.
SUGGESTION_TYPES = frozenset({AnalysisType.FOLLOWUP, AnalysisType.FACILITATION})


def _client_or_anonymous(v):
    if v is None or (isinstance(v, str) and not v.strip()):
        return ANONYMOUS_CLIENT_ID
    return v


class AnalysisRequest(BaseModel):
    """A validated analysis request.

    Accepts both wire dialects: the live route's sessionTopic/liveTranscript
    and the legacy route's questionContext/currentTranscript.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    session_topic: str = Field(
        ...,
        min_length=1,
        max_length=MAX_TOPIC_CHARS,
        validation_alias=AliasChoices("sessionTopic", "questionContext", "session_topic"),
    )
    transcript: str = Field(
        default=TRANSCRIPT_PLACEHOLDER,
        validation_alias=AliasChoices(
            "liveTranscript", "currentTranscript", "transcript"
        ),
    )
    analysis_type: AnalysisType = Field(
        ..., validation_alias=AliasChoices("analysisType", "analysis_type")
    )
    client_id: str = Field(
        default=ANONYMOUS_CLIENT_ID,
        max_length=MAX_CLIENT_ID_CHARS,
        validation_alias=AliasChoices("clientId", "client_id"),
    )
    session_duration: Optional[float] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("sessionDuration", "session_duration"),
    )

    @field_validator("session_topic")
    @classmethod
    def _topic_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("sessionTopic must not be blank")
        return v

    @field_validator("transcript", mode="before")
    @classmethod
    def _null_transcript(cls, v):
        return TRANSCRIPT_PLACEHOLDER if v is None else v

    @field_validator("transcript")
    @classmethod
    def _transcript_placeholder(cls, v: str, info: ValidationInfo) -> str:
        if not v.strip():
            return TRANSCRIPT_PLACEHOLDER
        limit = (info.context or {}).get("max_transcript_chars")
        if limit is not None and len(v) > limit:
            raise ValueError(f"transcript exceeds {limit} characters")
        return v

    @field_validator("client_id", mode="before")
    @classmethod
    def _default_client(cls, v):
        return _client_or_anonymous(v)

    @property
    def transcript_length(self) -> int:
        """Length of the caller's transcript; 0 when the placeholder stood in."""
        if self.transcript == TRANSCRIPT_PLACEHOLDER:
            return 0
        return len(self.transcript)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ResultMetadata(_CamelModel):
    tokens_used: int = Field(..., ge=0)
    timestamp: str = Field(default_factory=now_iso)
    session_topic: str
    transcript_length: int = Field(..., ge=0)


class AnalysisResult(_CamelModel):
    success: bool = True
    analysis_type: str
    content: str
    suggestions: Optional[List[str]] = Field(default=None, max_length=MAX_SUGGESTIONS)
    confidence: float = Field(..., ge=0.0, le=1.0)
    metadata: ResultMetadata


class LegacyMetadata(_CamelModel):
    transcript_length: int = Field(..., ge=0)
    has_content: bool
    timestamp: str = Field(default_factory=now_iso)


class TranscriptEntry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    text: str
    speaker: str
    timestamp: str


class SpeakerIdentificationRequest(BaseModel):
    """Labelled transcript entries to attribute to named speakers."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    transcript: List[TranscriptEntry] = Field(
        ..., min_length=1, max_length=MAX_SPEAKER_ENTRIES
    )
    client_id: str = Field(
        default=ANONYMOUS_CLIENT_ID,
        max_length=MAX_CLIENT_ID_CHARS,
        validation_alias=AliasChoices("clientId", "client_id"),
    )

    @field_validator("transcript")
    @classmethod
    def _within_char_limit(
        cls, v: List[TranscriptEntry], info: ValidationInfo
    ) -> List[TranscriptEntry]:
        limit = (info.context or {}).get("max_transcript_chars")
        if limit is not None and sum(len(entry.text) for entry in v) > limit:
            raise ValueError(f"transcript text exceeds {limit} characters")
        return v

    @field_validator("client_id", mode="before")
    @classmethod
    def _default_client(cls, v):
        return _client_or_anonymous(v)


class SpeakerMetadata(_CamelModel):
    entry_count: int = Field(..., ge=0)
    tokens_used: int = Field(..., ge=0)
    timestamp: str = Field(default_factory=now_iso)

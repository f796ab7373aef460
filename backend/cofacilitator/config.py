import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

# Checked in order; the first non-empty value wins.
API_KEY_ENV_VARS = (
    "OPENAI_API_KEY",
    "NEXT_PUBLIC_OPENAI_API_KEY",
    "OPENAI_KEY",
    "OpenAI_Key",
    "NEXT_OPENAI_API_KEY",
    "AI_API_KEY",
)

DEFAULT_LIVE_RATE_LIMIT = 50
DEFAULT_LEGACY_RATE_LIMIT = 100
# Each speaker identification request makes two model calls.
DEFAULT_SPEAKER_RATE_LIMIT = 20
DEFAULT_MODEL_TIMEOUT_SECONDS = 30
DEFAULT_MAX_TRANSCRIPT_CHARS = 50_000


@dataclass(frozen=True)
class Settings:
    app_env: str = "development"
    frontend_origin: str = ""
    live_rate_limit_per_hour: int = DEFAULT_LIVE_RATE_LIMIT
    legacy_rate_limit_per_hour: int = DEFAULT_LEGACY_RATE_LIMIT
    speaker_rate_limit_per_hour: int = DEFAULT_SPEAKER_RATE_LIMIT
    model_timeout_seconds: int = DEFAULT_MODEL_TIMEOUT_SECONDS
    max_transcript_chars: int = DEFAULT_MAX_TRANSCRIPT_CHARS
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


def _int_env(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not an integer, using {default}")
        return default
    if value <= 0:
        logger.warning(f"{name}={value} must be positive, using {default}")
        return default
    return value


def _log_level(environ: Mapping[str, str]) -> str:
    level = environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if not isinstance(logging.getLevelName(level), int):
        logger.warning(f"LOG_LEVEL={level!r} is not a logging level, using INFO")
        return "INFO"
    return level


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        app_env=env.get("APP_ENV", "development").strip().lower() or "development",
        frontend_origin=env.get("FRONTEND_ORIGIN", "").strip(),
        live_rate_limit_per_hour=_int_env(
            env, "LIVE_RATE_LIMIT_PER_HOUR", DEFAULT_LIVE_RATE_LIMIT
        ),
        legacy_rate_limit_per_hour=_int_env(
            env, "LEGACY_RATE_LIMIT_PER_HOUR", DEFAULT_LEGACY_RATE_LIMIT
        ),
        speaker_rate_limit_per_hour=_int_env(
            env, "SPEAKER_RATE_LIMIT_PER_HOUR", DEFAULT_SPEAKER_RATE_LIMIT
        ),
        model_timeout_seconds=_int_env(
            env, "MODEL_TIMEOUT_SECONDS", DEFAULT_MODEL_TIMEOUT_SECONDS
        ),
        max_transcript_chars=_int_env(
            env, "MAX_TRANSCRIPT_CHARS", DEFAULT_MAX_TRANSCRIPT_CHARS
        ),
        log_level=_log_level(env),
    )


def resolve_api_key(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return the first non-empty model-provider key from API_KEY_ENV_VARS."""
    env = os.environ if environ is None else environ
    for name in API_KEY_ENV_VARS:
        value = env.get(name, "").strip()
        if value:
            return value
    return None

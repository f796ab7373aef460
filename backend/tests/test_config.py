"""Tests for settings and API key resolution."""

from cofacilitator.config import (
    API_KEY_ENV_VARS,
    DEFAULT_LIVE_RATE_LIMIT,
    load_settings,
    resolve_api_key,
)


class TestResolveApiKey:
    def test_first_non_empty_wins(self):
        env = {"OPENAI_API_KEY": "  ", "OPENAI_KEY": "second", "AI_API_KEY": "last"}
        assert resolve_api_key(env) == "second"

    def test_order_follows_candidate_list(self):
        env = {name: f"key-{i}" for i, name in enumerate(API_KEY_ENV_VARS)}
        assert resolve_api_key(env) == "key-0"

    def test_missing(self):
        assert resolve_api_key({}) is None


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings({})
        assert settings.app_env == "development"
        assert settings.live_rate_limit_per_hour == 50
        assert settings.legacy_rate_limit_per_hour == 100
        assert settings.speaker_rate_limit_per_hour == 20
        assert settings.model_timeout_seconds == 30
        assert settings.max_transcript_chars == 50_000
        assert settings.log_level == "INFO"
        assert not settings.is_production

    def test_overrides(self):
        settings = load_settings({
            "APP_ENV": "Production",
            "FRONTEND_ORIGIN": "https://example.com ",
            "LIVE_RATE_LIMIT_PER_HOUR": "5",
            "LEGACY_RATE_LIMIT_PER_HOUR": "7",
            "SPEAKER_RATE_LIMIT_PER_HOUR": "3",
            "MODEL_TIMEOUT_SECONDS": "12",
            "MAX_TRANSCRIPT_CHARS": "999",
            "LOG_LEVEL": "debug",
        })
        assert settings.is_production
        assert settings.frontend_origin == "https://example.com"
        assert settings.live_rate_limit_per_hour == 5
        assert settings.legacy_rate_limit_per_hour == 7
        assert settings.speaker_rate_limit_per_hour == 3
        assert settings.model_timeout_seconds == 12
        assert settings.max_transcript_chars == 999
        assert settings.log_level == "DEBUG"

    def test_bad_values_fall_back(self, caplog):
        with caplog.at_level("WARNING"):
            settings = load_settings({
                "LIVE_RATE_LIMIT_PER_HOUR": "lots",
                "MODEL_TIMEOUT_SECONDS": "-3",
                "LOG_LEVEL": "chatty",
            })
        assert settings.live_rate_limit_per_hour == DEFAULT_LIVE_RATE_LIMIT
        assert settings.model_timeout_seconds == 30
        assert settings.log_level == "INFO"
        assert "LIVE_RATE_LIMIT_PER_HOUR" in caplog.text

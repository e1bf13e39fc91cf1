"""
Tests for Configuration and Logging
"""

import pytest
from pydantic import ValidationError

from gitlab_reviewer.config import Settings
from gitlab_reviewer.logging_config import REDACTED, filter_sensitive_data


class TestSettings:

    def test_loaded_from_environment(self):
        settings = Settings(_env_file=None)

        assert settings.gitlab_webhook_secret == "test-secret"
        assert settings.gitlab_url == "https://gitlab.example.com/api/v4"
        assert settings.missing_gitlab_credentials == []

    def test_defaults(self, monkeypatch):
        for name in ("GITLAB_WEBHOOK_SECRET", "GITLAB_PAT", "GITLAB_URL", "LLM_API_KEY", "MAX_ATTEMPTS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.port == 3000
        assert settings.llm_model == "gemini-2.5-flash"
        assert settings.max_attempts == 1
        assert settings.enable_gitlab_comments is True
        assert settings.gitlab_webhook_secret is None
        assert settings.missing_gitlab_credentials == ["GITLAB_PAT", "GITLAB_URL"]

    def test_gemini_api_key_alias(self, monkeypatch):
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        monkeypatch.setenv("GEMINI_API_KEY", "gemini-key")

        assert Settings(_env_file=None).llm_api_key == "gemini-key"

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="chatty")

    def test_max_attempts_bounds(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, max_attempts=0)


class TestSensitiveDataFilter:

    def test_redacts_secret_keys(self):
        event = filter_sensitive_data(None, "info", {
            "event": "configured",
            "gitlab_pat": "whatever",
            "webhook_secret": "s3cret",
            "PRIVATE-TOKEN": "abc",
            "path": "src/app.ts",
            "author": "jane",
        })

        assert event["gitlab_pat"] == REDACTED
        assert event["webhook_secret"] == REDACTED
        assert event["PRIVATE-TOKEN"] == REDACTED
        assert event["path"] == "src/app.ts"
        assert event["author"] == "jane"
        assert event["event"] == "configured"

    def test_redacts_token_looking_values(self):
        event = filter_sensitive_data(None, "info", {
            "event": "request",
            "value": "glpat-abcdefghijklmnop",
            "headers": {"Authorization": "Bearer x", "Accept": "application/json"},
        })

        assert event["value"] == REDACTED
        assert event["headers"] == {"Authorization": REDACTED, "Accept": "application/json"}

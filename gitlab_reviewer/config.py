"""
Configuration Management Module

This module handles all application configuration using Pydantic Settings.
Configuration is loaded from environment variables with strong typing and validation.

Design Decisions:
- Use Pydantic Settings for automatic environment variable loading
- Credentials are optional at startup; the review pipeline refuses to run without them
- Accept GEMINI_API_KEY as an alias for the LLM credential
- Read once and cache, never mutated afterwards
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All sensitive values are loaded from environment variables only,
    never hardcoded or logged.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # =========================================================================
    # GitLab Configuration
    # =========================================================================
    gitlab_webhook_secret: Optional[str] = Field(
        default=None,
        description="Shared secret expected in the X-Gitlab-Token header"
    )

    gitlab_pat: Optional[str] = Field(
        default=None,
        description="GitLab personal access token used for API calls"
    )

    gitlab_url: Optional[str] = Field(
        default=None,
        description="GitLab API base URL, e.g. https://gitlab.com/api/v4"
    )

    # =========================================================================
    # LLM Configuration
    # =========================================================================
    llm_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("llm_api_key", "gemini_api_key"),
        description="API key for the chat completion endpoint"
    )

    llm_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai/",
        description="OpenAI-compatible endpoint serving the review model"
    )

    llm_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used for code review"
    )

    # =========================================================================
    # Review Output
    # =========================================================================
    comment_banner: str = Field(
        default="\U0001F916 **AI Code Review (Powered by Gemini)**",
        description="Attribution line placed above every review comment"
    )

    enable_gitlab_comments: bool = Field(
        default=True,
        description="Post reviews to GitLab; when disabled reviews are only logged"
    )

    # =========================================================================
    # Outbound Calls
    # =========================================================================
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for GitLab API requests in seconds"
    )

    max_attempts: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Attempts per GitLab call on transient failure (1 disables retries)"
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Host to bind the server"
    )

    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port to bind the server"
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    log_json_format: bool = Field(
        default=True,
        description="Enable JSON logging format"
    )

    log_requests: bool = Field(
        default=False,
        description="Enable request/response logging"
    )

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("gitlab_url")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        """Normalize the base URL so endpoint paths can be appended."""
        if v is None:
            return None
        v = v.strip().rstrip("/")
        return v or None

    # =========================================================================
    # Computed Properties
    # =========================================================================
    @property
    def missing_gitlab_credentials(self) -> List[str]:
        """Names of the GitLab settings the review pipeline needs but lacks."""
        missing = []
        if not self.gitlab_pat:
            missing.append("GITLAB_PAT")
        if not self.gitlab_url:
            missing.append("GITLAB_URL")
        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once,
    which is important for performance and consistency.

    Returns:
        Settings instance
    """
    return Settings()

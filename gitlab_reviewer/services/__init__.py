"""
Services Package

This package contains the outbound service clients:
- gitlab_client: GitLab API client (changes, notes)
- ai_engine: LLM review engine
"""

from gitlab_reviewer.services.ai_engine import AIReviewEngine, AIReviewError, get_ai_engine
from gitlab_reviewer.services.gitlab_client import (
    GitLabAPIError,
    GitLabAuthError,
    GitLabClient,
    GitLabResponseError,
    get_gitlab_client,
)

__all__ = [
    "get_gitlab_client",
    "GitLabClient",
    "GitLabAPIError",
    "GitLabAuthError",
    "GitLabResponseError",
    "get_ai_engine",
    "AIReviewEngine",
    "AIReviewError",
]

"""
Test Configuration

Pytest configuration and fixtures for the test suite.
"""

import json
import os
from types import SimpleNamespace
from typing import Any, Dict, Generator, List, Optional

# Settings are read from the environment on first use; set them before the app is imported
os.environ["GITLAB_WEBHOOK_SECRET"] = "test-secret"
os.environ["GITLAB_PAT"] = "glpat-test-token"
os.environ["GITLAB_URL"] = "https://gitlab.example.com/api/v4"
os.environ["LLM_API_KEY"] = "test-llm-key"
os.environ["LOG_JSON_FORMAT"] = "false"
os.environ["ENABLE_GITLAB_COMMENTS"] = "true"
os.environ["MAX_ATTEMPTS"] = "1"

import httpx
import pytest
from fastapi.testclient import TestClient

from gitlab_reviewer.config import get_settings

get_settings.cache_clear()

from gitlab_reviewer.main import app
from gitlab_reviewer.models import MergeRequestContext
from gitlab_reviewer.services.ai_engine import AIReviewEngine
from gitlab_reviewer.services.gitlab_client import GitLabClient
from gitlab_reviewer.webhook import processor

GITLAB_URL = "https://gitlab.example.com/api/v4"


class FakeGitLab:
    """
    Stand-in for the GitLab API, served through httpx.MockTransport.

    Records every request in the shared ``calls`` list.
    """

    def __init__(self, calls: List[tuple]):
        self.calls = calls
        self.changes_status = 200
        self.changes_body: Any = {
            "id": 1001,
            "iid": 7,
            "changes": [
                {
                    "old_path": "src/user.ts",
                    "new_path": "src/user.ts",
                    "diff": "@@ -1,3 +1,4 @@\n interface User {\n+  role: string;\n }\n",
                    "new_file": False,
                    "renamed_file": False,
                    "deleted_file": False,
                }
            ],
        }
        self.note_status = 201
        self.posted_bodies: List[Dict[str, Any]] = []
        self.raise_on_get: Optional[Exception] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(("gitlab", request.method, str(request.url)))

        if request.method == "GET":
            if self.raise_on_get is not None:
                raise self.raise_on_get
            return httpx.Response(self.changes_status, json=self.changes_body)

        body = json.loads(request.content)
        self.posted_bodies.append(body)
        return httpx.Response(self.note_status, json={"id": 555, "body": body["body"]})

    def client(self, settings=None) -> GitLabClient:
        return GitLabClient(settings, transport=httpx.MockTransport(self.handler))


class FakeCompletions:
    def __init__(self, calls: List[tuple]):
        self.calls = calls
        self.content: Optional[str] = "- Looks fine.\n"
        self.error: Optional[Exception] = None
        self.requests: List[Dict[str, Any]] = []

    async def create(self, **kwargs):
        self.calls.append(("llm", kwargs["model"]))
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))]
        )


class FakeLLMClient:
    """Mimics the part of AsyncOpenAI the review engine uses."""

    def __init__(self, calls: List[tuple]):
        self.completions = FakeCompletions(calls)
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Tests may change the environment; reload settings around each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """Settings as loaded from the test environment."""
    return get_settings()


@pytest.fixture
def calls() -> List[tuple]:
    """Ordered record of outbound calls."""
    return []


@pytest.fixture
def fake_gitlab(calls) -> FakeGitLab:
    return FakeGitLab(calls)


@pytest.fixture
def fake_llm(calls) -> FakeLLMClient:
    return FakeLLMClient(calls)


@pytest.fixture
def fake_services(monkeypatch, fake_gitlab, fake_llm):
    """Route the review pipeline to the fake GitLab and LLM."""
    monkeypatch.setattr(processor, "get_gitlab_client", fake_gitlab.client)
    monkeypatch.setattr(
        processor,
        "get_ai_engine",
        lambda: AIReviewEngine(client=fake_llm)
    )
    return SimpleNamespace(gitlab=fake_gitlab, llm=fake_llm)


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a test client for synchronous tests."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def webhook_headers() -> Dict[str, str]:
    return {
        "X-Gitlab-Token": "test-secret",
        "X-Gitlab-Event": "Merge Request Hook",
    }


@pytest.fixture
def sample_mr_payload() -> dict:
    """Sample merge request webhook payload."""
    return {
        "object_kind": "merge_request",
        "event_type": "merge_request",
        "user": {
            "id": 3,
            "name": "Test User",
            "username": "testuser",
        },
        "project": {
            "id": 42,
            "name": "shop-api",
            "web_url": "https://gitlab.example.com/team/shop-api",
        },
        "object_attributes": {
            "id": 1001,
            "iid": 7,
            "project_id": 42,
            "source_branch": "feature/roles",
            "target_branch": "main",
            "title": "Add user roles",
            "state": "opened",
            "action": "open",
        },
        "labels": [],
    }


@pytest.fixture
def mr_context() -> MergeRequestContext:
    return MergeRequestContext(
        project_id=42,
        merge_request_iid=7,
        diff_url=f"{GITLAB_URL}/projects/42/merge_requests/7/changes",
        action="open",
        source_branch="feature/roles",
        target_branch="main",
        username="testuser",
    )

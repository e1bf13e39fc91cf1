"""
GitLab API Client Module

This module provides the client used to talk to the GitLab REST API.
It fetches merge request changes and posts review notes.

Design Decisions:
- Use httpx for async HTTP requests
- Authenticate with a personal access token (PRIVATE-TOKEN header)
- Validate response bodies with Pydantic before handing them on
- Transient failures (network errors, 5xx) may be retried, opt-in via settings
"""

from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gitlab_reviewer.config import Settings, get_settings
from gitlab_reviewer.logging_config import get_logger
from gitlab_reviewer.models import MergeRequestChange, MergeRequestChanges, MergeRequestNote

logger = get_logger(__name__)


class GitLabAPIError(Exception):
    """Custom exception for GitLab API errors."""
    def __init__(self, message: str, status_code: int = None, response_body: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class GitLabAuthError(GitLabAPIError):
    """Raised when GitLab rejects the access token."""
    pass


class GitLabTransientError(GitLabAPIError):
    """Network failure or 5xx response; safe to try again."""
    pass


class GitLabResponseError(GitLabAPIError):
    """Raised when a GitLab response does not have the expected shape."""
    pass


class GitLabClient:
    """
    Async GitLab API client.

    Usage:
        client = GitLabClient(settings)
        changes = await client.get_merge_request_changes(
            client.changes_url(42, 7)
        )
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the GitLab client.

        Args:
            settings: Application settings; the cached settings by default
            transport: Optional httpx transport, used to stub GitLab in tests
        """
        self.settings = settings or get_settings()
        self._transport = transport
        self._retry_wait = wait_exponential(multiplier=1, min=2, max=30)

    @property
    def base_url(self) -> str:
        if not self.settings.gitlab_url:
            raise GitLabAPIError("GitLab base URL is not configured")
        return self.settings.gitlab_url

    def changes_url(self, project_id: int, merge_request_iid: int) -> str:
        """URL of the merge request changes (diff) endpoint."""
        return f"{self.base_url}/projects/{project_id}/merge_requests/{merge_request_iid}/changes"

    def notes_url(self, project_id: int, merge_request_iid: int) -> str:
        """URL of the merge request notes (comments) endpoint."""
        return f"{self.base_url}/projects/{project_id}/merge_requests/{merge_request_iid}/notes"

    def _get_headers(self) -> Dict[str, str]:
        """Get authenticated headers for API requests."""
        if not self.settings.gitlab_pat:
            raise GitLabAuthError("GitLab access token is not configured")
        return {
            "PRIVATE-TOKEN": self.settings.gitlab_pat,
            "Accept": "application/json",
        }

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Make an authenticated request to the GitLab API.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Absolute endpoint URL
            **kwargs: Additional arguments to pass to httpx

        Returns:
            httpx.Response object

        Raises:
            GitLabAuthError: On 401/403
            GitLabTransientError: On network errors and 5xx once attempts are used up
            GitLabAPIError: On any other error status
        """
        headers = self._get_headers()

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.settings.max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type(GitLabTransientError),
            reraise=True
        ):
            with attempt:
                return await self._send(method, url, headers, **kwargs)

    async def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        **kwargs
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout_seconds,
                transport=self._transport
            ) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(
                "GitLab request failed",
                method=method,
                url=url,
                error=str(e),
                error_type=type(e).__name__
            )
            raise GitLabTransientError(f"GitLab request failed: {e}") from e

        if response.status_code in (401, 403):
            raise GitLabAuthError(
                f"GitLab rejected the access token: {response.status_code}",
                status_code=response.status_code,
                response_body=response.text
            )

        if response.status_code >= 400:
            error_body = response.text
            logger.error(
                "GitLab API error",
                status_code=response.status_code,
                method=method,
                url=url,
                error=error_body[:500]
            )
            error_class = GitLabTransientError if response.status_code >= 500 else GitLabAPIError
            raise error_class(
                f"GitLab API error: {response.status_code}",
                status_code=response.status_code,
                response_body=error_body
            )

        return response

    async def get_merge_request_changes(self, diff_url: str) -> List[MergeRequestChange]:
        """
        Fetch the changes (per-file diffs) of a merge request.

        Args:
            diff_url: Address built by ``changes_url``

        Returns:
            List of changed files with their diffs

        Raises:
            GitLabResponseError: If the body is not JSON or lacks ``changes``
        """
        logger.info("Fetching merge request changes", url=diff_url)

        response = await self._request("GET", diff_url)

        try:
            data: Any = response.json()
        except ValueError as e:
            raise GitLabResponseError(
                "Merge request changes response is not JSON",
                status_code=response.status_code,
                response_body=response.text[:500]
            ) from e

        try:
            parsed = MergeRequestChanges.model_validate(data)
        except ValidationError as e:
            raise GitLabResponseError(
                f"Unexpected merge request changes response: {e.error_count()} validation error(s)",
                status_code=response.status_code,
                response_body=response.text[:500]
            ) from e

        logger.info(
            "Fetched merge request changes",
            url=diff_url,
            num_files=len(parsed.changes)
        )
        return parsed.changes

    async def create_merge_request_note(
        self,
        project_id: int,
        merge_request_iid: int,
        body: str
    ) -> MergeRequestNote:
        """
        Post a note (comment) on a merge request.

        Args:
            project_id: GitLab project id
            merge_request_iid: Merge request number within the project
            body: Markdown comment body

        Returns:
            The created note
        """
        url = self.notes_url(project_id, merge_request_iid)
        response = await self._request("POST", url, json={"body": body})

        try:
            note = MergeRequestNote.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise GitLabResponseError(
                "Unexpected note creation response",
                status_code=response.status_code,
                response_body=response.text[:500]
            ) from e

        logger.info(
            "Posted merge request note",
            project_id=project_id,
            merge_request_iid=merge_request_iid,
            note_id=note.id
        )
        return note


def get_gitlab_client(settings: Optional[Settings] = None) -> GitLabClient:
    """Create a GitLab client bound to the given (or cached) settings."""
    return GitLabClient(settings)

"""
Data Models Module

This module defines all Pydantic models used throughout the application.
Strong typing ensures data integrity and provides clear contracts between components.

Design Decisions:
- Use Pydantic models for all data transfer objects
- Webhook models only declare the fields we read; GitLab sends many more
- GitLab API responses are validated before they reach the prompt
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class MergeRequestAction(str, Enum):
    """Merge request lifecycle actions reported by GitLab."""
    OPEN = "open"
    UPDATE = "update"
    CLOSE = "close"
    MERGE = "merge"


REVIEWABLE_ACTIONS = frozenset({MergeRequestAction.OPEN.value, MergeRequestAction.UPDATE.value})

MERGE_REQUEST_HOOK = "Merge Request Hook"


# =============================================================================
# GitLab Webhook Models
# =============================================================================

class GitLabUser(BaseModel):
    """User who triggered the event."""
    name: Optional[str] = None
    username: Optional[str] = None


class GitLabProject(BaseModel):
    """Project the merge request belongs to."""
    id: int
    name: Optional[str] = None


class MergeRequestAttributes(BaseModel):
    """
    The ``object_attributes`` section of a merge request hook.

    Attributes:
        id: Global merge request id
        iid: Merge request number within the project (used in API paths)
        project_id: Target project id
        action: Lifecycle action that triggered the hook
    """
    id: Optional[int] = None
    iid: int
    project_id: Optional[int] = None
    source_branch: Optional[str] = None
    target_branch: Optional[str] = None
    action: str


class MergeRequestWebhookPayload(BaseModel):
    """Merge request webhook payload."""
    object_kind: str = "merge_request"
    event_type: str = "merge_request"
    user: GitLabUser = Field(default_factory=GitLabUser)
    project: GitLabProject
    object_attributes: MergeRequestAttributes


# =============================================================================
# GitLab API Models
# =============================================================================

class MergeRequestChange(BaseModel):
    """One file entry of the merge request changes endpoint."""
    old_path: str
    new_path: str
    diff: str = ""
    new_file: bool = False
    renamed_file: bool = False
    deleted_file: bool = False


class MergeRequestChanges(BaseModel):
    """
    Response of ``GET /projects/:id/merge_requests/:iid/changes``.

    Only the ``changes`` list is required; GitLab returns the full merge
    request object around it.
    """
    changes: List[MergeRequestChange]


class MergeRequestNote(BaseModel):
    """Note (comment) created on a merge request."""
    id: int
    body: str = ""


# =============================================================================
# Internal Processing Models
# =============================================================================

class MergeRequestContext(BaseModel):
    """
    Everything the review pipeline needs about one merge request.

    Built by the webhook handler from a validated payload.
    """
    project_id: int
    merge_request_iid: int
    diff_url: str
    action: str
    source_branch: Optional[str] = None
    target_branch: Optional[str] = None
    username: Optional[str] = None

    @property
    def reference(self) -> str:
        """Short reference used in logs, e.g. ``42!7``."""
        return f"{self.project_id}!{self.merge_request_iid}"


class ReviewResult(BaseModel):
    """Outcome of one pipeline run. Never persisted."""
    review_text: str = ""
    comment_body: str
    note_id: Optional[int] = None

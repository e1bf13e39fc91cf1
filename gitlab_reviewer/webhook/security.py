"""
Webhook Security Module

This module verifies that webhook deliveries really come from GitLab and
decides whether an event is one we act on.

GitLab does not sign payloads; it echoes the shared secret configured on the
hook in the X-Gitlab-Token header. We compare it with our configured secret.

Design Decisions:
- Use constant-time comparison to prevent timing attacks
- Verify the token before any payload processing
- Never log the token or the expected secret
"""

import hmac
from typing import Optional

from fastapi import HTTPException, Request, status

from gitlab_reviewer.config import get_settings
from gitlab_reviewer.logging_config import get_logger
from gitlab_reviewer.models import MERGE_REQUEST_HOOK, REVIEWABLE_ACTIONS

logger = get_logger(__name__)

TOKEN_HEADER = "X-Gitlab-Token"
EVENT_HEADER = "X-Gitlab-Event"


def verify_gitlab_token(request: Request) -> bool:
    """
    Verify the shared secret sent by GitLab.

    Args:
        request: FastAPI request object

    Returns:
        True if the token matches

    Raises:
        HTTPException: 401 if the token is missing, wrong, or no secret is configured
    """
    expected = get_settings().gitlab_webhook_secret
    received = request.headers.get(TOKEN_HEADER)
    remote_addr = request.client.host if request.client else "unknown"

    if not expected:
        logger.warning(
            "Webhook verification failed: no webhook secret configured",
            remote_addr=remote_addr
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid secret token."
        )

    if not received or not hmac.compare_digest(received.encode(), expected.encode()):
        logger.warning(
            "Webhook verification failed: invalid secret token",
            remote_addr=remote_addr,
            header_present=received is not None
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid secret token."
        )

    return True


def is_merge_request_hook(event_type: Optional[str]) -> bool:
    """Check the X-Gitlab-Event header names a merge request hook."""
    return event_type == MERGE_REQUEST_HOOK


def is_reviewable_action(action: Optional[str]) -> bool:
    """
    Only merge requests that were opened or received new commits are reviewed.

    close, merge, reopen, approvals and anything unknown are ignored.
    """
    return isinstance(action, str) and action in REVIEWABLE_ACTIONS

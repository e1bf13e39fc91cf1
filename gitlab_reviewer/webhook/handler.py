"""
Webhook Handler Module

This module defines the FastAPI endpoint receiving GitLab merge request hooks.

Design Decisions:
- Verify the shared secret before looking at anything else
- Answer 200 for events we do not act on so GitLab does not retry them
- Answer 202 once the review is queued; the review runs as a background task
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from gitlab_reviewer.config import get_settings
from gitlab_reviewer.logging_config import get_logger
from gitlab_reviewer.models import MergeRequestContext, MergeRequestWebhookPayload
from gitlab_reviewer.services.gitlab_client import get_gitlab_client
from gitlab_reviewer.webhook import processor
from gitlab_reviewer.webhook.security import (
    EVENT_HEADER,
    is_merge_request_hook,
    is_reviewable_action,
    verify_gitlab_token,
)

logger = get_logger(__name__)

router = APIRouter(tags=["webhook"])


@router.post("/gitlab-webhook", response_class=PlainTextResponse)
async def gitlab_webhook(
    request: Request,
    background_tasks: BackgroundTasks
) -> PlainTextResponse:
    """
    GitLab merge request webhook endpoint.

    Validates the shared secret and the event type, filters on the merge
    request action and queues the review.

    Raises:
        HTTPException: 401 on a bad secret, 400 on a malformed payload
    """
    # Step 1: Shared secret
    verify_gitlab_token(request)

    # Step 2: Event type
    event_type = request.headers.get(EVENT_HEADER)
    if not is_merge_request_hook(event_type):
        logger.debug("Ignoring non merge request event", event_type=event_type)
        return PlainTextResponse(
            "Event received, but not a Merge Request Hook. Ignored.",
            status_code=status.HTTP_200_OK
        )

    # Step 3: Action
    try:
        payload_dict = await request.json()
    except ValueError as e:
        logger.error("Failed to parse webhook payload", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON payload"
        )

    action = _extract_action(payload_dict)
    if not is_reviewable_action(action):
        logger.debug("Ignoring merge request action", action=action)
        return PlainTextResponse(
            f"MR event action '{action}' ignored.",
            status_code=status.HTTP_200_OK
        )

    # Step 4: Validate and build the review context
    try:
        payload = MergeRequestWebhookPayload.model_validate(payload_dict)
    except ValidationError as e:
        logger.error(
            "Invalid merge request payload",
            error=str(e),
            action=action
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid payload: {e.error_count()} validation error(s)"
        )

    context = _build_context(payload)

    logger.info(
        "Received merge request event, queueing review",
        merge_request=context.reference,
        action=action,
        username=context.username
    )

    background_tasks.add_task(_process_review_with_error_handling, context)

    return PlainTextResponse(
        "Webhook accepted. Review process started.",
        status_code=status.HTTP_202_ACCEPTED
    )


def _extract_action(payload_dict) -> Optional[str]:
    if not isinstance(payload_dict, dict):
        return None
    attributes = payload_dict.get("object_attributes")
    if not isinstance(attributes, dict):
        return None
    return attributes.get("action")


def _build_context(payload: MergeRequestWebhookPayload) -> MergeRequestContext:
    project_id = payload.project.id
    merge_request_iid = payload.object_attributes.iid

    # The base URL may be unset; the pipeline reports that, the webhook does not
    if get_settings().gitlab_url:
        diff_url = get_gitlab_client().changes_url(project_id, merge_request_iid)
    else:
        diff_url = f"/projects/{project_id}/merge_requests/{merge_request_iid}/changes"

    return MergeRequestContext(
        project_id=project_id,
        merge_request_iid=merge_request_iid,
        diff_url=diff_url,
        action=payload.object_attributes.action,
        source_branch=payload.object_attributes.source_branch,
        target_branch=payload.object_attributes.target_branch,
        username=payload.user.username
    )


async def _process_review_with_error_handling(context: MergeRequestContext) -> None:
    """
    Run the review and log, never raise.

    The webhook caller has already been answered, so failures are only
    visible in the logs.
    """
    try:
        result = await processor.process_merge_request_review(context)

        if result is None:
            logger.warning(
                "Review did not run",
                merge_request=context.reference
            )

    except Exception as e:
        logger.error(
            "Error during code review process",
            merge_request=context.reference,
            error=str(e),
            error_type=type(e).__name__
        )

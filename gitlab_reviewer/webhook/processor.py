"""
Review Pipeline Module

This module runs the review of one merge request: fetch the changes,
ask the LLM for a review, post the review as a merge request note.

Design Decisions:
- Steps run strictly in order; a failure stops the remaining steps
- Every failure is raised as ReviewPipelineError; the caller decides to swallow it
- Collaborators are injectable so the pipeline can be exercised without network
"""

from typing import Optional

from gitlab_reviewer.config import Settings, get_settings
from gitlab_reviewer.logging_config import get_logger
from gitlab_reviewer.models import MergeRequestChange, MergeRequestContext, ReviewResult
from gitlab_reviewer.services.ai_engine import AIReviewEngine, AIReviewError, format_comment, get_ai_engine
from gitlab_reviewer.services.gitlab_client import GitLabAPIError, GitLabClient, get_gitlab_client

logger = get_logger(__name__)


class ReviewPipelineError(Exception):
    """Custom exception for review pipeline failures."""
    pass


class ReviewPipeline:
    """
    Orchestrates the review of a single merge request.

    1. Fetches the merge request changes from GitLab
    2. Sends them to the LLM for review
    3. Posts the review back as a note

    Usage:
        pipeline = ReviewPipeline(context)
        result = await pipeline.run()
    """

    def __init__(
        self,
        context: MergeRequestContext,
        settings: Optional[Settings] = None,
        gitlab_client: Optional[GitLabClient] = None,
        ai_engine: Optional[AIReviewEngine] = None
    ):
        self.context = context
        self.settings = settings or get_settings()
        self.gitlab_client = gitlab_client or get_gitlab_client(self.settings)
        self.ai_engine = ai_engine or get_ai_engine()

    async def run(self) -> Optional[ReviewResult]:
        """
        Execute the review.

        Returns:
            ReviewResult on success, None if GitLab credentials are missing

        Raises:
            ReviewPipelineError: If any step fails
        """
        missing = self.settings.missing_gitlab_credentials
        if missing:
            logger.error(
                "GitLab credentials are not configured, skipping review",
                merge_request=self.context.reference,
                missing=missing
            )
            return None

        logger.info(
            "Starting merge request review",
            merge_request=self.context.reference,
            action=self.context.action,
            source_branch=self.context.source_branch,
            target_branch=self.context.target_branch
        )

        changes = await self._fetch_changes()
        review_text = await self._run_ai_review(changes)
        comment_body = format_comment(self.settings.comment_banner, review_text)
        note_id = await self._post_comment(comment_body)

        logger.info(
            "Merge request review completed",
            merge_request=self.context.reference,
            note_id=note_id,
            review_length=len(review_text)
        )

        return ReviewResult(
            review_text=review_text,
            comment_body=comment_body,
            note_id=note_id
        )

    async def _fetch_changes(self) -> list[MergeRequestChange]:
        """Fetch the merge request diff from GitLab."""
        try:
            return await self.gitlab_client.get_merge_request_changes(self.context.diff_url)
        except GitLabAPIError as e:
            raise ReviewPipelineError(f"Failed to fetch merge request changes: {e}") from e

    async def _run_ai_review(self, changes: list[MergeRequestChange]) -> str:
        """Ask the LLM for a review of the changes."""
        try:
            return await self.ai_engine.review_changes(
                changes,
                reference=self.context.reference
            )
        except AIReviewError as e:
            raise ReviewPipelineError(f"AI review failed: {e}") from e

    async def _post_comment(self, comment_body: str) -> Optional[int]:
        """Post the review as a merge request note."""
        if not self.settings.enable_gitlab_comments:
            logger.info(
                "GitLab comments disabled, review not posted",
                merge_request=self.context.reference,
                comment=comment_body
            )
            return None

        try:
            note = await self.gitlab_client.create_merge_request_note(
                self.context.project_id,
                self.context.merge_request_iid,
                comment_body
            )
        except GitLabAPIError as e:
            raise ReviewPipelineError(f"Failed to post review comment: {e}") from e

        return note.id


async def process_merge_request_review(context: MergeRequestContext) -> Optional[ReviewResult]:
    """
    Convenience function to review a merge request.

    This is the main entry point for background task processing.
    """
    pipeline = ReviewPipeline(context)
    return await pipeline.run()

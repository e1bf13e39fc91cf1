"""
AI Review Engine Module

This module turns merge request changes into review feedback using an
LLM behind an OpenAI-compatible chat completion API (Gemini by default).

Design Decisions:
- One fixed instructional prompt with the changes embedded as JSON
- The model answers in free-form Markdown; the text is posted as-is
- An empty completion is a valid (empty) review, not an error
- The API client is created lazily so missing credentials surface as AIReviewError
"""

import json
from typing import Any, List, Optional

from openai import AsyncOpenAI

from gitlab_reviewer.config import Settings, get_settings
from gitlab_reviewer.logging_config import get_logger
from gitlab_reviewer.models import MergeRequestChange

logger = get_logger(__name__)


class AIReviewError(Exception):
    """Custom exception for AI review errors."""
    pass


REVIEW_PROMPT_TEMPLATE = """You are an expert AI Code Reviewer for Node.js (TypeScript/JavaScript) and Flutter/Dart projects. Analyze the provided GitLab merge request diff for bugs, security vulnerabilities, performance issues, and style guide violations. Please adhere to the following guidelines:

Provide your feedback in a concise, Markdown-formatted list. Use inline code suggestions if you find a specific fix.
- Review Principles
1. Conciseness: Focus on the most critical issues (bugs, security, performance).
2. Formatting: Use clear Markdown formatting.
3. Suggestions: Provide inline code suggestions where applicable.
4. Priority: Prioritize issues that could lead to bugs or security vulnerabilities.
5. Specificity: Avoid generic feedback; be specific to the code changes.
6. Scope: If the diff is too large, focus on the first 500 lines.
7. Conclusion: If no issues are found, respond with "No issues found."

- Strict Naming Convention Enforcement
All identifiers must strictly adhere to the following prefixes/suffixes using PascalCase:

1. Enum: Must start with E (e.g., EUserRole, EPaymentStatus).
2. DTO (Data Transfer Object): Must start with DTO (e.g., DTOUserCreate, DTOProduct).
3. Interface: Must start with I (e.g., IUser, IUserRepository).
4. Type Alias (TS): Must start with T (e.g., TUserID, TProductPayload).
5. Abstract Class: Must start with A (e.g., AEntity, AUserState).
6. Repository/Data Access Class: Must start with R (e.g., RUserRepository, RRemoteDataSource).
7. Utility/Helper Class/Function: Must start with U (e.g., UHelper, UDateTimeUtils).
8. Custom Error Class: Must end with Error (e.g., NotFoundError, TimeoutError).
9. Custom Exception Class: Must end with Exception (e.g., AuthException, ValidationException).

- Platform-Specific Naming
1. Node.js / TypeScript
+ Database Model Class/Entity: Use PascalCase and end with Entity (e.g., UserEntity, ProductEntity).
+ Test Class/Function: Use snake_case describing the test purpose (e.g., test_user_creation, should_fetch_products).
+ Environment Variable: Use UPPER_CASE_SNAKE (e.g., DATABASE_URL, API_KEY).

2. Flutter / Dart
+ Widget (Component): Use PascalCase (e.g., UserProfileWidget, ProductListScreen).
+ Provider/BLoC/Cubit: Use PascalCase (e.g., UserProvider, AuthCubit).
+ Hook (Composable Function): Must start with use and use camelCase (e.g., useAuth, useFetchUser).
+ Frontend Styling (General)
+ CSS/SCSS Class: Use kebab-case (e.g., user-profile, product-list).
+ SCSS Variable: Must start with $ and use kebab-case (e.g., $primary-color, $font-size).
+ HTML/JSX/Widget Data Attribute: Must start with data- and use kebab-case (e.g., data-user-id).

You should only respond with the review comments in Markdown format. Do not include any explanations or apologies.
Please use diff context to inform your review, but do not repeat the entire diff in your response.
Please focus solely on the code quality and issues.
No review too long to avoid timeouts.
Here is the diff to review (if too large, focus on the first 500 lines):
---
{diff}
---"""


def build_review_prompt(changes: List[MergeRequestChange]) -> str:
    """Embed the serialized changes into the review instructions."""
    serialized = json.dumps(
        [change.model_dump() for change in changes],
        indent=2,
        ensure_ascii=False
    )
    return REVIEW_PROMPT_TEMPLATE.format(diff=serialized)


def format_comment(banner: str, review_text: str) -> str:
    """Comment body posted on the merge request."""
    return f"{banner}\n\n{review_text}"


class AIReviewEngine:
    """
    LLM-backed merge request reviewer.

    Usage:
        engine = AIReviewEngine()
        review_text = await engine.review_changes(changes, reference="42!7")
    """

    def __init__(self, settings: Optional[Settings] = None, client: Any = None):
        """
        Initialize the AI review engine.

        Args:
            settings: Application settings; the cached settings by default
            client: Pre-built chat completion client (tests pass a fake)
        """
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.settings.llm_api_key:
                raise AIReviewError("LLM API key is not configured")
            self._client = AsyncOpenAI(
                api_key=self.settings.llm_api_key,
                base_url=self.settings.llm_base_url
            )
        return self._client

    async def review_changes(
        self,
        changes: List[MergeRequestChange],
        reference: Optional[str] = None
    ) -> str:
        """
        Ask the model to review the given changes.

        Args:
            changes: Files changed by the merge request
            reference: Merge request reference for logging

        Returns:
            Trimmed Markdown review; empty string if the model returned nothing

        Raises:
            AIReviewError: If the API call fails
        """
        prompt = build_review_prompt(changes)

        logger.info(
            "Sending diff to LLM",
            merge_request=reference,
            model=self.settings.llm_model,
            num_files=len(changes),
            prompt_length=len(prompt)
        )

        try:
            response = await self.client.chat.completions.create(
                model=self.settings.llm_model,
                messages=[{"role": "user", "content": prompt}]
            )
        except AIReviewError:
            raise
        except Exception as e:
            logger.error(
                "LLM request failed",
                merge_request=reference,
                error=str(e),
                error_type=type(e).__name__
            )
            raise AIReviewError(f"AI review failed: {e}") from e

        content = None
        if response is not None and response.choices:
            content = response.choices[0].message.content

        review_text = (content or "").strip()

        if not review_text:
            logger.warning("LLM returned an empty review", merge_request=reference)
        else:
            logger.info(
                "Received LLM review",
                merge_request=reference,
                response_length=len(review_text)
            )

        return review_text


# Singleton instance
_engine_instance: Optional[AIReviewEngine] = None


def get_ai_engine() -> AIReviewEngine:
    """Get the singleton AIReviewEngine instance."""
    global _engine_instance
    if _engine_instance is None:
        _engine_instance = AIReviewEngine()
    return _engine_instance

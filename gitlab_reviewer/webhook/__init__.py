"""
Webhook Package

This package contains webhook handling components:
- handler: GitLab merge request hook endpoint
- security: Shared secret verification and event filtering
- processor: Merge request review pipeline
- payments: SePay payment webhook stub
"""

from gitlab_reviewer.webhook.handler import router
from gitlab_reviewer.webhook.payments import router as payments_router

__all__ = ["router", "payments_router"]

"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.
It sets up all routes and exception handlers.

Design Decisions:
- Use lifespan events for startup/shutdown
- Missing credentials are reported at startup but do not stop the service
- Expose health check endpoints
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from gitlab_reviewer import __version__
from gitlab_reviewer.config import get_settings
from gitlab_reviewer.logging_config import get_logger, setup_logging
from gitlab_reviewer.webhook import payments_router
from gitlab_reviewer.webhook import router as webhook_router

# Initialize logging first
setup_logging()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events for the application.
    """
    settings = get_settings()

    logger.info(
        "GitLab Reviewer starting",
        host=settings.host,
        port=settings.port,
        model=settings.llm_model
    )

    if not settings.gitlab_webhook_secret:
        logger.warning("GITLAB_WEBHOOK_SECRET is not set, every webhook will be rejected")
    if settings.missing_gitlab_credentials:
        logger.warning(
            "GitLab credentials are not set in environment variables",
            missing=settings.missing_gitlab_credentials
        )
    if not settings.llm_api_key:
        logger.warning("LLM API key is not set, reviews will fail")

    yield

    logger.info("GitLab Reviewer shutting down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="GitLab MR Reviewer",
        description="AI-powered GitLab merge request reviewer",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(webhook_router)
    app.include_router(payments_router)

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "type": type(exc).__name__
            }
        )

    @app.get("/")
    async def root():
        """Root endpoint with basic info."""
        return {
            "name": "GitLab MR Reviewer",
            "version": __version__,
            "status": "running"
        }

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.

        Returns basic health status for load balancers and monitors.
        """
        return {
            "status": "healthy",
            "service": "gitlab-mr-reviewer",
            "version": __version__
        }

    return app


# Create the application instance
app = create_app()

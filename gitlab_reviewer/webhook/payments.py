"""
SePay payment webhook stub.

Receives payment notifications, logs them and always acknowledges.
Nothing acts on these events yet.
"""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from gitlab_reviewer.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/sepay/webhook", response_class=PlainTextResponse)
async def sepay_webhook(request: Request) -> PlainTextResponse:
    raw_body = await request.body()
    try:
        body: Any = await request.json() if raw_body else None
    except ValueError:
        body = raw_body.decode("utf-8", errors="replace")

    logger.info("Received SePay webhook", body=body)
    return PlainTextResponse("OK")

"""Recall.ai webhook receiver.

Recall.ai posts ``{"event": ..., "data": {...}}`` for bot lifecycle events.
``recording.done`` and ``transcript.done`` are routed to BotManager; other
events are acknowledged and ignored.

Unlike most webhook receivers this one answers 500 on unexpected handler
errors so Recall.ai redelivers the event. Handlers are idempotent for a
repeated delivery: a stale bot id is a logged no-op and an already
processed transcript is skipped.

No user authentication: Recall.ai calls this directly. When
RECALL_WEBHOOK_TOKEN is configured the X-Recall-Token header must match.
"""

from __future__ import annotations

import hmac
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from src.notetaker.api.deps import get_bot_manager
from src.notetaker.config import get_settings
from src.notetaker.core.monitoring import webhook_events_total
from src.notetaker.meetings.bot.errors import ValidationError
from src.notetaker.meetings.bot.manager import BotManager

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _verify_token(request: Request) -> None:
    """Reject the request if a webhook token is configured and does not match."""
    expected = get_settings().RECALL_WEBHOOK_TOKEN
    if not expected:
        return
    provided = request.headers.get("X-Recall-Token", "")
    if not hmac.compare_digest(provided, expected):
        logger.warning("webhook.invalid_token")
        webhook_events_total.labels(event="unknown", outcome="unauthorized").inc()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook token",
        )


@router.post("/recall")
async def receive_recall_webhook(
    request: Request,
    bot_manager: BotManager = Depends(get_bot_manager),
) -> dict:
    """Validate and route a Recall.ai webhook event.

    Returns:
        ``{"success": true}`` once the event is handled or ignored.

    Raises:
        HTTPException: 400 for a malformed payload, 401 for a bad token,
            500 when handling fails unexpectedly.
    """
    _verify_token(request)

    try:
        payload = await request.json()
    except ValueError:
        payload = None

    event = payload.get("event") if isinstance(payload, dict) else None
    data = payload.get("data") if isinstance(payload, dict) else None
    if not event or not isinstance(data, dict):
        logger.warning("webhook.invalid_payload")
        webhook_events_total.labels(event="unknown", outcome="invalid").inc()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload",
        )

    logger.info("webhook.received", event_type=event)

    try:
        handled = await bot_manager.handle_bot_event(event, data)
    except ValidationError as exc:
        webhook_events_total.labels(event=event, outcome="invalid").inc()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:
        webhook_events_total.labels(event=event, outcome="error").inc()
        logger.exception("webhook.handler_error", event_type=event)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        ) from exc

    webhook_events_total.labels(
        event=event if handled else "other",
        outcome="handled" if handled else "ignored",
    ).inc()
    return {"success": True}


@router.get("/recall")
async def webhook_status() -> dict:
    """Acknowledge that the webhook endpoint is reachable."""
    return {
        "message": "Recall.ai webhook endpoint is active",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

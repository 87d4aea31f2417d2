"""Evolution API webhook - intake of session events.

The route only validates and enqueues: events are handled sequentially by
the ingestion loop, never on the request thread.
"""

from __future__ import annotations

import hmac
from typing import Any

from fastapi import APIRouter, Depends, Header, Request, Response

from wabridge.api.deps import get_context
from wabridge.context import BridgeContext
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context
from wabridge.whatsapp.evolution_adapter import InvalidPayloadError, event_name, parse_events

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

logger = get_logger(__name__)


def _secret_ok(expected: str, payload: dict[str, Any], header_secret: str | None) -> bool:
    """Accept the shared secret from X-Webhook-Secret or the body "apikey"."""
    if not expected:
        return True
    provided = header_secret or payload.get("apikey")
    if not isinstance(provided, str) or not provided:
        return False
    return hmac.compare_digest(provided, expected)


@router.post("/evolution")
async def evolution_webhook(
    request: Request,
    x_webhook_secret: str | None = Header(None, alias="X-Webhook-Secret"),
    ctx: BridgeContext = Depends(get_context),
) -> Response:
    """Receive an Evolution API webhook.

    Returns:
        200 "ok" when the events were queued, "ignored" when the bridge does
        not consume the event.
        400 if the body is not JSON or a consumed event has an invalid shape.
        401 if EVOLUTION_WEBHOOK_SECRET is set and does not match.
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("invalid json body")
        return Response(status_code=400, content="invalid json", media_type="text/plain")
    if not isinstance(payload, dict):
        return Response(status_code=400, content="invalid json", media_type="text/plain")

    if not _secret_ok(ctx.settings.evolution_webhook_secret, payload, x_webhook_secret):
        logger.warning("evolution webhook secret mismatch")
        return Response(status_code=401, content="unauthorized", media_type="text/plain")

    name = event_name(payload)
    try:
        events = parse_events(payload)
    except InvalidPayloadError as e:
        logger.warning(
            "invalid evolution payload shape",
            extra={"extra_fields": safe_log_context(event=name, error=str(e))},
        )
        return Response(status_code=400, content="invalid payload shape", media_type="text/plain")

    if not events:
        return Response(status_code=200, content="ignored", media_type="text/plain")

    for event in events:
        ctx.session.push(event)
    if len(events) > 1:
        logger.info(
            "batched evolution events queued",
            extra={"extra_fields": safe_log_context(event=name, count=len(events))},
        )
    return Response(status_code=200, content="ok", media_type="text/plain")

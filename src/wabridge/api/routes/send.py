"""Outbound text message endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from wabridge.api.deps import get_context
from wabridge.context import BridgeContext
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import mask_jid, safe_log_context
from wabridge.whatsapp.jid import InvalidJIDError, parse_jid
from wabridge.whatsapp.session import SessionError

router = APIRouter(prefix="/api", tags=["messages"])

logger = get_logger(__name__)


class SendMessageRequest(BaseModel):
    jid: str
    message: str


def _text(status_code: int, content: str) -> Response:
    return Response(status_code=status_code, content=content, media_type="text/plain")


# Plain def: the gateway call blocks, so FastAPI runs this in its threadpool.
@router.post("/send")
def send_message(
    req: SendMessageRequest,
    ctx: BridgeContext = Depends(get_context),
) -> Response:
    """Send a text message through the session.

    Body: {"jid": "<jid or phone>", "message": "<text>"}

    Returns:
        200 with the gateway message id.
        400 if the body (see the app's validation handler) or the JID is invalid.
        500 if the gateway rejects the send.
    """
    try:
        jid = parse_jid(req.jid)
    except InvalidJIDError as e:
        return _text(400, f"Invalid JID: {e}")

    try:
        message_id = ctx.session.send_text(jid, req.message)
    except SessionError as e:
        logger.error(
            "send failed",
            extra={"extra_fields": safe_log_context(to=mask_jid(jid))},
        )
        return _text(500, f"Failed to send message: {e}")

    return _text(200, f"Message sent successfully! (ID: {message_id})")

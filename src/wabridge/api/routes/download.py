"""Media download endpoint for media seen during the live session."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from wabridge.api.deps import get_context
from wabridge.context import BridgeContext
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context
from wabridge.whatsapp.session import SessionError

router = APIRouter(prefix="/api", tags=["media"])

logger = get_logger(__name__)


@router.get("/download/{message_id}")
def download_media(
    message_id: str,
    ctx: BridgeContext = Depends(get_context),
) -> Response:
    """Stream the media of a message through the gateway.

    Returns:
        200 with the media bytes and a sniffed content type.
        404 if the message was never seen as media in this process.
        500 if the gateway download fails.
    """
    handle = ctx.cache.get(message_id)
    if handle is None:
        return Response(
            status_code=404,
            content="Media not found or expired",
            media_type="text/plain",
        )

    try:
        media = ctx.session.download(handle)
    except SessionError as e:
        logger.warning(
            "media download failed",
            extra={"extra_fields": safe_log_context(message_id=message_id, field=handle.field)},
        )
        return Response(
            status_code=500,
            content=f"Failed to download media: {e}",
            media_type="text/plain",
        )

    logger.info(
        "media downloaded",
        extra={
            "extra_fields": safe_log_context(
                message_id=message_id,
                size=len(media.data),
                content_type=media.content_type,
            )
        },
    )
    return Response(content=media.data, media_type=media.content_type)

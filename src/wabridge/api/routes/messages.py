"""Message history query endpoint."""

from __future__ import annotations

import re

from fastapi import APIRouter, Depends, Query, Response

from wabridge.api.deps import get_context
from wabridge.context import BridgeContext
from wabridge.domain.history import DEFAULT_LIMIT
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import mask_jid, safe_log_context

router = APIRouter(prefix="/api", tags=["messages"])

logger = get_logger(__name__)

_INT_RE = re.compile(r"[+-]?[0-9]+")


def parse_int(raw: str | None, default: int) -> int:
    """Strict decimal parsing with a fallback.

    Only an optional sign followed by ASCII digits is accepted; anything else
    (absent, padded, "1_0", "1.5") yields default.
    """
    if not raw or not _INT_RE.fullmatch(raw):
        return default
    return int(raw)


@router.get("/messages", response_model=None)
def get_messages(
    chat_jid: str = Query(""),
    sender_jid: str = Query(""),
    limit: str | None = Query(None),
    start_time: str | None = Query(None),
    end_time: str | None = Query(None),
    ctx: BridgeContext = Depends(get_context),
) -> list[dict] | Response:
    """Return stored messages, oldest first.

    Query params:
        chat_jid, sender_jid: exact-match filters (optional).
        limit: most recent N matching messages (default 10; <= 0 means all).
        start_time, end_time: inclusive epoch-second bounds (optional).

    Returns:
        200 with a JSON array of decoded messages.
        500 with a plain-text cause if the store cannot be read.
    """
    parsed_limit = parse_int(limit, DEFAULT_LIMIT)
    parsed_start = parse_int(start_time, 0)
    parsed_end = parse_int(end_time, 0)

    try:
        rows = ctx.history.query(
            chat_jid=chat_jid,
            sender_jid=sender_jid,
            limit=parsed_limit,
            start_time=parsed_start,
            end_time=parsed_end,
        )
    except Exception as e:
        logger.exception(
            "history query failed",
            extra={
                "extra_fields": safe_log_context(
                    chat=mask_jid(chat_jid),
                    limit=parsed_limit,
                )
            },
        )
        return Response(
            status_code=500,
            content=f"Failed to retrieve messages: {type(e).__name__}",
            media_type="text/plain",
        )

    return rows

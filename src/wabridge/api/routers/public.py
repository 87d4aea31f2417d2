"""Public health routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from wabridge.api.deps import get_context
from wabridge.context import BridgeContext
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context

router = APIRouter()

logger = get_logger(__name__)


@router.get("/health")
def health() -> dict:
    """Liveness: the process is serving requests."""
    return {"status": "ok"}


@router.get("/health/ready", response_model=None)
def ready(ctx: BridgeContext = Depends(get_context)) -> dict | JSONResponse:
    """Readiness: the message store answers and the session identity is known.

    Returns:
        200 {"status": "ok", "stored": n, "loggedIn": bool}
        503 {"status": "unavailable"} if the store cannot be read.
    """
    try:
        stored = ctx.store.count()
    except Exception as e:
        logger.error(
            "readiness check failed",
            extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
        )
        return JSONResponse(status_code=503, content={"status": "unavailable"})

    return {
        "status": "ok",
        "stored": stored,
        "loggedIn": ctx.session.own_jid is not None,
    }

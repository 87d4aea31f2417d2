"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError

from wabridge.context import BridgeContext
from wabridge.observability.correlation import CORRELATION_ID_HEADER, correlation_scope
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context

from .routers import public
from .routes import download, messages, send, webhooks_evolution

logger = get_logger(__name__)


def create_app(context: BridgeContext) -> FastAPI:
    """Create the bridge API bound to a context.

    Routes reach components through request.app.state.context. The lifespan
    starts the persistence workers and the ingestion loop, and stops them on
    shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        context.start()
        try:
            yield
        finally:
            context.stop()

    app = FastAPI(
        title="WhatsApp Bridge",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.context = context

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        with correlation_scope(request.headers.get(CORRELATION_ID_HEADER) or None) as cid:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response

    # API callers get plain-text 400s, not FastAPI's 422 JSON
    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> Response:
        logger.warning(
            "invalid request body",
            extra={
                "extra_fields": safe_log_context(
                    path=request.url.path,
                    errors=len(exc.errors()),
                )
            },
        )
        return Response(status_code=400, content="Invalid request body", media_type="text/plain")

    app.include_router(public.router)
    app.include_router(messages.router)
    app.include_router(download.router)
    app.include_router(send.router)
    app.include_router(webhooks_evolution.router)

    return app

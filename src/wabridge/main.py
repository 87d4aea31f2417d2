"""Bridge process entry point.

    wabridge            # reads configuration from the environment
"""

from __future__ import annotations

import uvicorn

from wabridge.api.factory import create_app
from wabridge.config import Settings
from wabridge.context import build_context
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context

logger = get_logger(__name__)


def main() -> None:
    """Load settings, prepare storage and serve the API until interrupted.

    Storage failures at startup are fatal: the bridge cannot run without its
    message store.
    """
    settings = Settings.from_env()
    context = build_context(settings)

    try:
        context.store.ensure_schema()
    except Exception:
        logger.exception(
            "failed to prepare message store",
            extra={"extra_fields": safe_log_context(dialect=context.engine.dialect.name)},
        )
        raise SystemExit(1)

    logger.info(
        "starting api server",
        extra={
            "extra_fields": safe_log_context(
                port=settings.port,
                dialect=context.engine.dialect.name,
            )
        },
    )
    # uvicorn handles SIGINT/SIGTERM; the app lifespan stops ingestion and
    # drains the persistence pool on the way out.
    uvicorn.run(create_app(context), host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    main()

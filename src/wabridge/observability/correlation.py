"""Correlation IDs for request and event tracing.

HTTP requests take theirs from the X-Correlation-ID header (or get a fresh
one); each ingested session event gets a fresh id, which then travels with
its persistence job to the worker thread that stores it.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    """Current correlation ID ("" outside any request or event)."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    correlation_id_var.reset(token)


@contextmanager
def correlation_scope(cid: str | None = None) -> Iterator[str]:
    """Run a block under cid (a new id when None), restoring the previous one after.

    Example:
        with correlation_scope() as cid:
            pipeline.handle(event)
    """
    if cid is None:
        cid = generate_correlation_id()
    token = correlation_id_var.set(cid)
    try:
        yield cid
    finally:
        correlation_id_var.reset(token)

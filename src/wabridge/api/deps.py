"""Route dependencies."""

from __future__ import annotations

from fastapi import Request

from wabridge.context import BridgeContext


def get_context(request: Request) -> BridgeContext:
    """Return the context the app was built with."""
    return request.app.state.context

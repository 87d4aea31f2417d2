"""Redaction helpers for safe logging.

WhatsApp JIDs embed phone numbers, so chat/sender identifiers go through
mask_jid() and free-form values through safe_log_context(). Message text is
never logged.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any

# Patterns that should never appear in logs
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"


def redact_string(value: str) -> str:
    """Redact PII patterns from a string."""
    result = _PHONE_PATTERN.sub(_REDACTED, value)
    result = _EMAIL_PATTERN.sub(_REDACTED, result)
    return result


def redact_value(value: Any) -> str:
    """Redact any value for safe logging. Returns string representation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        # For dicts, only log keys (structure), never values
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def mask_jid(jid: str) -> str:
    """Replace the user portion of a JID with a short sha256 prefix.

    "5511999999999@s.whatsapp.net" -> "s.whatsapp.net:3f1c2a9b0d4e"

    The "@" is dropped so the result survives redact_string().
    """
    if not jid:
        return ""
    user, _, server = jid.partition("@")
    digest = hashlib.sha256(user.encode()).hexdigest()[:12]
    return f"{server or '?'}:{digest}"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}

"""Bridge settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from wabridge.infra.db import DEFAULT_DATABASE_URL


def _int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


def _float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Process configuration, read once at startup."""

    consumer_base_url: str
    port: int = 8080
    server_base_url: str = "http://localhost:8080"
    database_url: str = DEFAULT_DATABASE_URL
    display_timezone: str = "Asia/Kolkata"
    history_context_limit: int = 10
    consumer_http_timeout: float = 10.0
    persist_workers: int = 4
    persist_queue_size: int = 1000
    evolution_base_url: str = ""
    evolution_instance: str = ""
    evolution_api_key: str = ""
    evolution_webhook_secret: str = ""
    own_jid: str = ""

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment.

        Required env vars:
        - DUMMY_AGENT_BASE_URL: consumer base URL (messages, status and QR sink)

        Optional (defaults in parentheses):
        - PORT (8080), SERVER_BASE_URL (http://localhost:{PORT})
        - DATABASE_URL (sqlite:///whatsapp.db), DB_PASSWORD
        - DISPLAY_TIMEZONE (Asia/Kolkata), HISTORY_CONTEXT_LIMIT (10)
        - CONSUMER_HTTP_TIMEOUT (10), PERSIST_WORKERS (4), PERSIST_QUEUE_SIZE (1000)
        - EVOLUTION_BASE_URL, EVOLUTION_INSTANCE, EVOLUTION_API_KEY,
          EVOLUTION_WEBHOOK_SECRET, WA_OWN_JID

        Raises:
            RuntimeError: If a required variable is missing or malformed.
        """
        consumer_base_url = os.environ.get("DUMMY_AGENT_BASE_URL", "")
        if not consumer_base_url:
            raise RuntimeError("DUMMY_AGENT_BASE_URL environment variable not set")

        port = _int("PORT", 8080)
        server_base_url = os.environ.get("SERVER_BASE_URL", "") or f"http://localhost:{port}"

        return cls(
            consumer_base_url=consumer_base_url.rstrip("/"),
            port=port,
            server_base_url=server_base_url.rstrip("/"),
            database_url=os.environ.get("DATABASE_URL", "") or DEFAULT_DATABASE_URL,
            display_timezone=os.environ.get("DISPLAY_TIMEZONE", "") or "Asia/Kolkata",
            history_context_limit=_int("HISTORY_CONTEXT_LIMIT", 10),
            consumer_http_timeout=_float("CONSUMER_HTTP_TIMEOUT", 10.0),
            persist_workers=_int("PERSIST_WORKERS", 4),
            persist_queue_size=_int("PERSIST_QUEUE_SIZE", 1000),
            evolution_base_url=os.environ.get("EVOLUTION_BASE_URL", ""),
            evolution_instance=os.environ.get("EVOLUTION_INSTANCE", ""),
            evolution_api_key=os.environ.get("EVOLUTION_API_KEY", ""),
            evolution_webhook_secret=os.environ.get("EVOLUTION_WEBHOOK_SECRET", ""),
            own_jid=os.environ.get("WA_OWN_JID", ""),
        )

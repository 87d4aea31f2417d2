"""Best-effort notifications to the external consumer.

Contract: at most once, no retry, no acknowledgement. notify() returns
whether the consumer answered 2xx, but callers must not depend on delivery.
"""

from __future__ import annotations

from typing import Any

import requests

from wabridge.observability.correlation import get_correlation_id
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context

logger = get_logger(__name__)

MESSAGE_PATH = "/api/message"
STATUS_PATH = "/api/status"
QR_PATH = "/api/qr"


class BestEffortNotifier:
    """POSTs JSON payloads to the consumer base URL."""

    def __init__(self, base_url: str, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    def notify(self, path: str, payload: dict[str, Any]) -> bool:
        """Send payload once to {base_url}{path}.

        Args:
            path: Consumer endpoint path (e.g. "/api/message").
            payload: JSON-serializable body.

        Returns:
            True if the consumer answered 2xx, False on any failure.
        """
        url = f"{self._base_url}{path}"
        correlation_id = get_correlation_id()
        headers = {"X-Correlation-ID": correlation_id} if correlation_id else {}

        try:
            response = requests.post(
                url,
                json=payload,
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(
                "consumer notification failed",
                extra={
                    "extra_fields": safe_log_context(
                        path=path,
                        error_type=type(e).__name__,
                    )
                },
            )
            return False

        logger.info(
            "consumer notified",
            extra={
                "extra_fields": safe_log_context(
                    path=path,
                    status_code=response.status_code,
                )
            },
        )
        return True

    def message(self, message: dict[str, Any], history: list[dict[str, Any]]) -> bool:
        """Forward a normalized message with its chat history."""
        return self.notify(MESSAGE_PATH, {"message": message, "history": history})

    def status(self, status: str) -> bool:
        """Report connection status ("logged_in" or "disconnected")."""
        return self.notify(STATUS_PATH, {"status": status})

    def qr(self, code: str) -> bool:
        """Push a pairing QR code."""
        return self.notify(QR_PATH, {"qr": code})

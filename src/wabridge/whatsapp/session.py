"""WhatsApp session capability backed by an Evolution API instance.

The gateway owns pairing, encryption and the websocket. The bridge only
needs three things from it: send a text, download a message's media, and a
stream of inbound events. Events arrive through the webhook route, which
push()es them onto the in-process stream consumed by the ingestion pipeline.
"""

from __future__ import annotations

import base64
import binascii
import queue
import threading
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import mask_jid, safe_log_context
from wabridge.whatsapp.media import resolve_content_type
from wabridge.whatsapp.models import MediaHandle, SessionEvent

logger = get_logger(__name__)


class SessionError(Exception):
    """Raised when a gateway call fails or returns an unusable response."""

    pass


@dataclass(frozen=True)
class DownloadedMedia:
    data: bytes
    content_type: str


class Session(Protocol):
    """What the bridge consumes from the WhatsApp session."""

    @property
    def own_jid(self) -> str | None: ...

    def set_own_jid(self, jid: str | None) -> None: ...

    def send_text(self, jid: str, text: str) -> str: ...

    def download(self, handle: MediaHandle) -> DownloadedMedia: ...

    def push(self, event: SessionEvent) -> None: ...

    def next_event(self, timeout: float | None = None) -> SessionEvent | None: ...


class EventStream:
    """Unbounded FIFO of session events with a single consumer."""

    def __init__(self) -> None:
        self._q: queue.Queue[SessionEvent] = queue.Queue()

    def push(self, event: SessionEvent) -> None:
        self._q.put(event)

    def next_event(self, timeout: float | None = None) -> SessionEvent | None:
        """Return the next event, blocking up to timeout seconds (None on expiry)."""
        try:
            return self._q.get(timeout=timeout)
        except queue.Empty:
            return None


class EvolutionSession:
    """Session implementation over the Evolution API REST interface."""

    def __init__(
        self,
        *,
        base_url: str,
        instance: str,
        api_key: str,
        timeout: float = 30.0,
        own_jid: str | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._instance = instance
        self._api_key = api_key
        self._timeout = timeout
        self._own_jid = own_jid or None
        self._own_jid_lock = threading.Lock()
        self._events = EventStream()

    @property
    def own_jid(self) -> str | None:
        with self._own_jid_lock:
            return self._own_jid

    def set_own_jid(self, jid: str | None) -> None:
        with self._own_jid_lock:
            self._own_jid = jid or None

    def push(self, event: SessionEvent) -> None:
        self._events.push(event)

    def next_event(self, timeout: float | None = None) -> SessionEvent | None:
        return self._events.next_event(timeout)

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}{path}/{self._instance}"
        try:
            response = requests.post(
                url,
                json=payload,
                headers={"apikey": self._api_key},
                timeout=self._timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise SessionError(f"gateway request failed: {e}") from e
        except ValueError as e:
            raise SessionError("gateway returned invalid json") from e
        if not isinstance(body, dict):
            raise SessionError("gateway returned unexpected body")
        return body

    def send_text(self, jid: str, text: str) -> str:
        """Send a text message.

        Returns:
            The ID the gateway assigned to the sent message ("" if unreported).

        Raises:
            SessionError: On network/HTTP errors or an unusable response.
        """
        logger.info(
            "sending outbound message",
            extra={
                "extra_fields": safe_log_context(
                    to=mask_jid(jid),
                    text_len=len(text),
                )
            },
        )
        body = self._post("/message/sendText", {"number": jid, "text": text})
        key = body.get("key")
        message_id = key.get("id") if isinstance(key, dict) else None
        return message_id if isinstance(message_id, str) else ""

    def download(self, handle: MediaHandle) -> DownloadedMedia:
        """Download and decrypt the media referenced by handle.

        Raises:
            SessionError: On gateway failure or undecodable media.
        """
        body = self._post(
            "/chat/getBase64FromMediaMessage",
            {
                "message": {
                    "key": {"id": handle.message_id},
                    "message": {handle.field: handle.media},
                },
                "convertToMp4": False,
            },
        )
        encoded = body.get("base64")
        if not isinstance(encoded, str) or not encoded:
            raise SessionError("gateway returned no media")
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SessionError("gateway returned invalid base64") from e

        declared = body.get("mimetype") if isinstance(body.get("mimetype"), str) else ""
        return DownloadedMedia(
            data=data,
            content_type=resolve_content_type(data, declared or handle.mimetype),
        )

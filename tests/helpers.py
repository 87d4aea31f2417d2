"""Shared test helpers (not fixtures).

Fakes for the session and the consumer notifier plus builders for events
and stored records.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from wabridge.infra.notifier import BestEffortNotifier
from wabridge.infra.repositories.messages_repository import StoredMessageRecord
from wabridge.whatsapp.classifier import serialize_message
from wabridge.whatsapp.models import MediaHandle, MessageEvent, MessageInfo, SessionEvent
from wabridge.whatsapp.session import DownloadedMedia, EventStream, SessionError

CHAT = "5511988887777@s.whatsapp.net"
OTHER_CHAT = "5511977776666@s.whatsapp.net"
GROUP = "120363025246125486@g.us"
OWN_JID = "5511900000000:7@s.whatsapp.net"


class FakeSession:
    """In-memory Session: records sends, serves canned downloads."""

    def __init__(self, own_jid: str | None = None) -> None:
        self._own_jid = own_jid
        self._events = EventStream()
        self.sent: list[tuple[str, str]] = []
        self.downloads: list[MediaHandle] = []
        self.media: DownloadedMedia | None = None
        self.fail_with: str | None = None

    @property
    def own_jid(self) -> str | None:
        return self._own_jid

    def set_own_jid(self, jid: str | None) -> None:
        self._own_jid = jid

    def send_text(self, jid: str, text: str) -> str:
        if self.fail_with:
            raise SessionError(self.fail_with)
        self.sent.append((jid, text))
        return f"SENT{len(self.sent)}"

    def download(self, handle: MediaHandle) -> DownloadedMedia:
        if self.fail_with:
            raise SessionError(self.fail_with)
        self.downloads.append(handle)
        if self.media is None:
            raise SessionError("no media configured")
        return self.media

    def push(self, event: SessionEvent) -> None:
        self._events.push(event)

    def next_event(self, timeout: float | None = None) -> SessionEvent | None:
        return self._events.next_event(timeout)


class RecordingNotifier(BestEffortNotifier):
    """Notifier that records payloads instead of POSTing them."""

    def __init__(self, ok: bool = True) -> None:
        super().__init__("http://agent.test")
        self.ok = ok
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def notify(self, path: str, payload: dict[str, Any]) -> bool:
        self.calls.append((path, payload))
        return self.ok

    def payloads(self, path: str) -> list[dict[str, Any]]:
        return [payload for p, payload in self.calls if p == path]


def at(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def make_event(
    message_id: str,
    message: dict[str, Any],
    *,
    chat: str = CHAT,
    sender: str | None = None,
    ts: int = 1_700_000_000,
    from_me: bool = False,
) -> MessageEvent:
    info = MessageInfo(
        message_id=message_id,
        timestamp=at(ts),
        sender_jid=sender or chat,
        chat_jid=chat,
        is_group=chat.endswith("@g.us"),
        from_me=from_me,
    )
    return MessageEvent(info=info, message=message)


def text_event(message_id: str, body: str, **kwargs: Any) -> MessageEvent:
    return make_event(message_id, {"conversation": body}, **kwargs)


def record(
    message_id: str,
    *,
    chat: str = CHAT,
    sender: str | None = None,
    ts: int = 1_700_000_000,
    message: dict[str, Any] | None = None,
    raw: bytes | None = None,
) -> StoredMessageRecord:
    if raw is None:
        raw = serialize_message(message if message is not None else {"conversation": message_id})
    return StoredMessageRecord(
        message_id=message_id,
        chat_jid=chat,
        sender_jid=sender or chat,
        message_content=raw,
        timestamp=ts,
    )


class LogRecorder:
    """Records logger calls so tests can assert on what was (not) logged."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((level, args, kwargs))

    def info(self, *args: Any, **kwargs: Any) -> None:
        self._record("info", *args, **kwargs)

    def warning(self, *args: Any, **kwargs: Any) -> None:
        self._record("warning", *args, **kwargs)

    def error(self, *args: Any, **kwargs: Any) -> None:
        self._record("error", *args, **kwargs)

    def exception(self, *args: Any, **kwargs: Any) -> None:
        self._record("exception", *args, **kwargs)

    def all_content(self) -> str:
        return " ".join(f"{args} {kwargs}" for _, args, kwargs in self.calls)

    def messages(self) -> list[str]:
        return [args[0] for _, args, _ in self.calls if args]

"""Evolution API adapter - validate webhook payloads and map them to session events.

Evolution v2 posts events as {"event": "messages.upsert", "instance": ...,
"data": {...}, "sender": "<own jid>"}; v1 uses upper-case names such as
"MESSAGES_UPSERT". Both are accepted.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from wabridge.infra.time import from_epoch, utc_now
from wabridge.whatsapp.jid import is_group_jid

from .models import (
    Connected,
    Disconnected,
    MessageEvent,
    MessageInfo,
    QRCodeEvent,
    SessionEvent,
)

MESSAGES_UPSERT = "messages.upsert"
CONNECTION_UPDATE = "connection.update"
QRCODE_UPDATED = "qrcode.updated"


class InvalidPayloadError(Exception):
    """Raised when Evolution payload has invalid shape."""

    pass


def event_name(payload: dict[str, Any]) -> str:
    """Return the normalized event name ("MESSAGES_UPSERT" -> "messages.upsert")."""
    name = payload.get("event")
    if not isinstance(name, str):
        return ""
    return name.strip().lower().replace("_", ".")


def parse_events(payload: dict[str, Any]) -> list[SessionEvent]:
    """Map an Evolution webhook payload to session events.

    Args:
        payload: Raw webhook payload from Evolution API.

    Returns:
        The session events in delivery order; empty for events the bridge
        does not consume. A batched messages.upsert yields one event per
        message.

    Raises:
        InvalidPayloadError: If a consumed event (or any item of a batch)
            has an invalid shape. Nothing is returned for such a payload.
    """
    name = event_name(payload)
    data = payload.get("data")

    if name == MESSAGES_UPSERT:
        own_jid = _str(payload.get("sender"))
        # Some Evolution versions batch upserts in a list.
        items = data if isinstance(data, list) else [data]
        if not items or not all(isinstance(item, dict) for item in items):
            raise InvalidPayloadError("missing data")
        return [_parse_message(item, own_jid=own_jid) for item in items]

    if name == CONNECTION_UPDATE:
        if not isinstance(data, dict):
            raise InvalidPayloadError("missing data")
        state = data.get("state")
        if state == "open":
            return [
                Connected(own_jid=_str(data.get("wuid")) or _str(payload.get("sender")) or None)
            ]
        if state == "close":
            reason = data.get("statusReason")
            return [Disconnected(reason=str(reason) if reason is not None else None)]
        # "connecting" and friends are transitional
        return []

    if name == QRCODE_UPDATED:
        if not isinstance(data, dict):
            raise InvalidPayloadError("missing data")
        qrcode = data.get("qrcode")
        code = _str(qrcode.get("code")) if isinstance(qrcode, dict) else ""
        if not code:
            raise InvalidPayloadError("missing qrcode.code")
        return [QRCodeEvent(code=code)]

    return []


def _parse_message(data: dict[str, Any], *, own_jid: str) -> MessageEvent:
    key = data.get("key")
    if not isinstance(key, dict):
        raise InvalidPayloadError("missing key")

    message_id = key.get("id")
    if not message_id or not isinstance(message_id, str):
        raise InvalidPayloadError("missing or invalid message_id")

    chat_jid = _str(key.get("remoteJid"))
    if not chat_jid:
        raise InvalidPayloadError("missing remoteJid")

    from_me = bool(key.get("fromMe", False))
    is_group = is_group_jid(chat_jid)

    # Groups name the author in key.participant; 1:1 chats are the peer or us.
    if is_group:
        sender_jid = _str(key.get("participant")) or _str(data.get("participant"))
        if not sender_jid and from_me:
            sender_jid = own_jid
    elif from_me:
        sender_jid = own_jid
    else:
        sender_jid = chat_jid
    if not sender_jid:
        sender_jid = chat_jid

    message = data.get("message")
    if not isinstance(message, dict):
        message = {}

    info = MessageInfo(
        message_id=message_id,
        timestamp=_parse_timestamp(data.get("messageTimestamp")),
        sender_jid=sender_jid,
        chat_jid=chat_jid,
        is_group=is_group,
        from_me=from_me,
    )
    return MessageEvent(info=info, message=message)


def _parse_timestamp(value: Any) -> datetime:
    """Evolution sends epoch seconds as int, numeric string or protobuf Long."""
    if isinstance(value, dict):
        value = value.get("low")
    if isinstance(value, str) and value.isdigit():
        value = int(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return from_epoch(int(value))
    return utc_now()


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""

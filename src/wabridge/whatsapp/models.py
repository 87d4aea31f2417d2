"""WhatsApp message and session event models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ContentType(str, Enum):
    """Closed set of normalized content variants."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"
    AUDIO = "audio"
    STICKER = "sticker"
    CONTACT = "contact"
    BUTTONS = "buttons"
    LIST = "list"
    UNSUPPORTED = "unsupported"


MEDIA_TYPES = frozenset(
    {
        ContentType.IMAGE,
        ContentType.VIDEO,
        ContentType.DOCUMENT,
        ContentType.AUDIO,
        ContentType.STICKER,
    }
)


@dataclass(frozen=True)
class Content:
    """Normalized message content, independent of the protocol encoding."""

    type: ContentType
    body: str = ""
    caption: str = ""
    mimetype: str = ""
    download_url: str = ""

    @property
    def is_media(self) -> bool:
        return self.type in MEDIA_TYPES

    def to_dict(self) -> dict[str, str]:
        """Serialize with camelCase keys, omitting empty fields."""
        data = {"type": self.type.value}
        if self.body:
            data["body"] = self.body
        if self.caption:
            data["caption"] = self.caption
        if self.mimetype:
            data["mimetype"] = self.mimetype
        if self.download_url:
            data["downloadURL"] = self.download_url
        return data


@dataclass(frozen=True)
class MediaHandle:
    """Downloadable sub-structure of a media message.

    field is the payload key ("imageMessage", ...), media its value
    (url, mediaKey, directPath, mimetype, ...).
    """

    message_id: str
    field: str
    media: dict[str, Any]

    @property
    def mimetype(self) -> str:
        value = self.media.get("mimetype")
        return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class MessageInfo:
    """Envelope metadata of one inbound message."""

    message_id: str
    timestamp: datetime
    sender_jid: str
    chat_jid: str
    is_group: bool
    from_me: bool = False


@dataclass(frozen=True)
class MessageEvent:
    """An inbound message as delivered by the session."""

    info: MessageInfo
    message: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Connected:
    """Session logged in. own_jid is the account identity, when reported."""

    own_jid: str | None = None


@dataclass(frozen=True)
class Disconnected:
    """Session connection closed."""

    reason: str | None = None


@dataclass(frozen=True)
class QRCodeEvent:
    """A new pairing QR code was issued."""

    code: str


SessionEvent = MessageEvent | Connected | Disconnected | QRCodeEvent


@dataclass(frozen=True)
class InboundMessage:
    """Normalized inbound message forwarded to the consumer.

    Ephemeral: built per event and discarded after forwarding. The raw
    payload is what gets persisted.
    """

    message_id: str
    timestamp: datetime
    sender_jid: str
    chat_jid: str
    is_group: bool
    is_from_me: bool
    content: Content

    def to_dict(self) -> dict[str, Any]:
        return {
            "messageID": self.message_id,
            "timestamp": self.timestamp.isoformat(),
            "senderJID": self.sender_jid,
            "chatJID": self.chat_jid,
            "isGroup": self.is_group,
            "isFromMe": self.is_from_me,
            "content": self.content.to_dict(),
        }

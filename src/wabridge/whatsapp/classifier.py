"""Content classifier - maps raw WhatsApp payloads to normalized Content.

A single priority-ordered table of variant decoders is shared by:
- the live path, classify(): runs on inbound events, registers media in the
  media reference cache and sets download URLs;
- the decode path, decode_stored(): runs on persisted payloads for history,
  with no cache side effects and no download URLs.

Payloads use WhatsApp Web JSON field names ("conversation",
"extendedTextMessage", "imageMessage", ...).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import Any, Callable

from wabridge.infra.media_cache import MediaReferenceCache
from wabridge.whatsapp.models import Content, ContentType, MediaHandle

KEY_DISTRIBUTION_FIELD = "senderKeyDistributionMessage"

UNSUPPORTED_BODY = "Message type not supported by this bridge."


class PayloadDecodeError(Exception):
    """Raised when stored payload bytes cannot be decoded."""

    pass


@dataclass(frozen=True)
class Match:
    """Result of running the variant table over a payload."""

    content: Content
    field: str | None = None
    media: dict[str, Any] | None = None


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _sub(message: dict[str, Any], field: str) -> dict[str, Any] | None:
    value = message.get(field)
    return value if isinstance(value, dict) else None


def _conversation(message: dict[str, Any]) -> Match | None:
    body = _str(message.get("conversation"))
    if not body:
        return None
    return Match(Content(ContentType.TEXT, body=body))


def _extended_text(message: dict[str, Any]) -> Match | None:
    sub = _sub(message, "extendedTextMessage")
    if sub is None or not _str(sub.get("text")):
        return None
    return Match(Content(ContentType.TEXT, body=sub["text"]))


def _media(
    field: str,
    content_type: ContentType,
    *,
    caption: bool,
    mimetype: bool,
) -> Callable[[dict[str, Any]], Match | None]:
    def decode(message: dict[str, Any]) -> Match | None:
        sub = _sub(message, field)
        if sub is None:
            return None
        content = Content(
            content_type,
            caption=_str(sub.get("caption")) if caption else "",
            mimetype=_str(sub.get("mimetype")) if mimetype else "",
        )
        return Match(content, field=field, media=sub)

    decode.__name__ = f"_{field}"
    return decode


def _prompt(
    field: str,
    content_type: ContentType,
    body_key: str,
) -> Callable[[dict[str, Any]], Match | None]:
    def decode(message: dict[str, Any]) -> Match | None:
        sub = _sub(message, field)
        if sub is None:
            return None
        return Match(Content(content_type, body=_str(sub.get(body_key))))

    decode.__name__ = f"_{field}"
    return decode


# Fixed priority order - first match wins.
VARIANTS: tuple[Callable[[dict[str, Any]], Match | None], ...] = (
    _conversation,
    _extended_text,
    _media("imageMessage", ContentType.IMAGE, caption=True, mimetype=True),
    _media("videoMessage", ContentType.VIDEO, caption=True, mimetype=True),
    _media("documentMessage", ContentType.DOCUMENT, caption=True, mimetype=True),
    _media("audioMessage", ContentType.AUDIO, caption=False, mimetype=True),
    _media("stickerMessage", ContentType.STICKER, caption=False, mimetype=False),
    _prompt("contactMessage", ContentType.CONTACT, "displayName"),
    _prompt("buttonsMessage", ContentType.BUTTONS, "contentText"),
    _prompt("listMessage", ContentType.LIST, "description"),
)


def is_key_distribution(message: dict[str, Any]) -> bool:
    """True for internal sender-key distribution payloads."""
    return message.get(KEY_DISTRIBUTION_FIELD) is not None


def match(message: dict[str, Any]) -> Match:
    """Run the variant table over message. Always returns exactly one Match."""
    for decode in VARIANTS:
        result = decode(message)
        if result is not None:
            return result
    return Match(Content(ContentType.UNSUPPORTED, body=UNSUPPORTED_BODY))


def download_url(server_base_url: str, message_id: str) -> str:
    return f"{server_base_url.rstrip('/')}/api/download/{message_id}"


def classify(
    message: dict[str, Any],
    message_id: str,
    *,
    cache: MediaReferenceCache[MediaHandle],
    server_base_url: str,
) -> Content | None:
    """Classify a live inbound payload.

    Returns None for key-distribution payloads, which must be dropped
    without any side effect. Media variants are registered in cache under
    message_id and get a download URL pointing back at this bridge.
    """
    if is_key_distribution(message):
        return None

    result = match(message)
    if result.field is None or result.media is None:
        return result.content

    cache.put(message_id, MediaHandle(message_id, result.field, result.media))
    return replace(result.content, download_url=download_url(server_base_url, message_id))


def serialize_message(message: dict[str, Any]) -> bytes:
    """Serialize a raw payload for storage."""
    return json.dumps(message, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode_stored(raw: bytes | memoryview | None) -> Content:
    """Decode a stored payload into Content (history path).

    Never touches the media cache: historical media is not downloadable.

    Raises:
        PayloadDecodeError: If raw is not a serialized JSON object.
    """
    if raw is None:
        raise PayloadDecodeError("empty payload")
    try:
        message = json.loads(bytes(raw).decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise PayloadDecodeError(str(e)) from e
    if not isinstance(message, dict):
        raise PayloadDecodeError(f"expected object, got {type(message).__name__}")

    if is_key_distribution(message):
        return Content(ContentType.UNSUPPORTED, body=UNSUPPORTED_BODY)
    return match(message).content

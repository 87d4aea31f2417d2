"""WhatsApp JID helpers.

A JID looks like "user[.agent][:device]@server", e.g.
"5511999999999:12@s.whatsapp.net" or "120363025246125486@g.us".
"""

from __future__ import annotations

GROUP_SERVER = "g.us"
USER_SERVER = "s.whatsapp.net"


class InvalidJIDError(ValueError):
    """Raised when a string cannot be used as a JID."""

    pass


def user_part(jid: str) -> str:
    """Return the user portion of a JID, without agent or device suffix.

    A string without "@" has no user portion.
    """
    user, sep, _ = jid.partition("@")
    if not sep:
        return ""
    user = user.split(":", 1)[0]
    if "." in user:
        user = user.split(".", 1)[0]
    return user


def server_part(jid: str) -> str:
    """Return the server portion of a JID ("" when there is none)."""
    _, sep, server = jid.partition("@")
    return server if sep else ""


def is_group_jid(jid: str) -> bool:
    return server_part(jid) == GROUP_SERVER


def is_same_user(sender_jid: str, own_jid: str | None) -> bool:
    """Self-origin check: sender and own identity share a user portion.

    False when the session identity is unknown.
    """
    if not own_jid:
        return False
    return user_part(sender_jid) == user_part(own_jid)


def parse_jid(value: str) -> str:
    """Validate a recipient and return it as a JID.

    Bare phone numbers (optionally with a leading "+") become user JIDs.

    Raises:
        InvalidJIDError: If value is empty or malformed.
    """
    value = (value or "").strip()
    if not value:
        raise InvalidJIDError("empty jid")

    if "@" not in value:
        number = value[1:] if value.startswith("+") else value
        if not number.isdigit():
            raise InvalidJIDError(f"not a phone number or jid: {value!r}")
        return f"{number}@{USER_SERVER}"

    user, _, server = value.partition("@")
    if not server or "@" in server:
        raise InvalidJIDError(f"malformed jid: {value!r}")
    if not user:
        raise InvalidJIDError(f"missing user in jid: {value!r}")
    return value

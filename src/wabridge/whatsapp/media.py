"""Media content-type sniffing by magic numbers."""

from __future__ import annotations

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"%PDF-", "application/pdf"),
    (b"OggS", "audio/ogg"),
    (b"ID3", "audio/mpeg"),
    (b"\x1a\x45\xdf\xa3", "video/webm"),
    (b"PK\x03\x04", "application/zip"),
)


def sniff_content_type(data: bytes) -> str:
    """Guess a MIME type from the leading bytes of data."""
    for signature, content_type in _SIGNATURES:
        if data.startswith(signature):
            return content_type

    # RIFF containers carry their format at offset 8
    if data[:4] == b"RIFF" and len(data) >= 12:
        if data[8:12] == b"WEBP":
            return "image/webp"
        if data[8:12] == b"WAVE":
            return "audio/wav"

    # ISO base media (mp4/m4a/3gp): "ftyp" box at offset 4
    if data[4:8] == b"ftyp":
        brand = data[8:12]
        if brand in (b"M4A ", b"M4B "):
            return "audio/mp4"
        return "video/mp4"

    return DEFAULT_CONTENT_TYPE


def resolve_content_type(data: bytes, declared: str = "") -> str:
    """Sniffed type first; the declared mimetype only when sniffing is inconclusive."""
    sniffed = sniff_content_type(data)
    if sniffed != DEFAULT_CONTENT_TYPE:
        return sniffed
    return declared or DEFAULT_CONTENT_TYPE

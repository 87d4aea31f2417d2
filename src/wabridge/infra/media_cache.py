"""In-memory media reference cache.

Maps a message ID to the downloadable sub-structure of a media message seen
during the live session. Entries are never evicted: they live as long as the
process does.
"""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

H = TypeVar("H")


class MediaReferenceCache(Generic[H]):
    """Thread-safe message_id -> handle mapping with last-write-wins puts."""

    def __init__(self) -> None:
        self._entries: dict[str, H] = {}
        self._lock = threading.Lock()

    def put(self, message_id: str, handle: H) -> None:
        """Store handle for message_id, silently replacing any previous one."""
        with self._lock:
            self._entries[message_id] = handle

    def get(self, message_id: str) -> H | None:
        """Return the handle for message_id, or None if it was never seen."""
        with self._lock:
            return self._entries.get(message_id)

    def __contains__(self, message_id: object) -> bool:
        with self._lock:
            return message_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

"""Messages repository - durable, append-only store of raw inbound payloads.

Uses raw SQL through SQLAlchemy text() (no ORM). One row per message_id;
rows are never updated or deleted here.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.engine import Engine

from wabridge.infra.db import txn

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS messages (
    message_id TEXT PRIMARY KEY,
    chat_jid TEXT NOT NULL,
    sender_jid TEXT NOT NULL,
    message_content {blob_type},
    timestamp INTEGER
)
"""

_CREATE_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_messages_chat_jid ON messages (chat_jid)",
    "CREATE INDEX IF NOT EXISTS idx_messages_sender_jid ON messages (sender_jid)",
    "CREATE INDEX IF NOT EXISTS idx_messages_timestamp ON messages (timestamp)",
)


def schema_statements(dialect_name: str) -> list[str]:
    """DDL for the messages table and its indexes, idempotent on both backends.

    Shared by ensure_schema() and the alembic revision.
    """
    blob_type = "BYTEA" if dialect_name == "postgresql" else "BLOB"
    return [_CREATE_TABLE.format(blob_type=blob_type), *_CREATE_INDEXES]


class DuplicateMessageError(Exception):
    """Raised when a message_id is already stored (primary key collision)."""

    def __init__(self, message_id: str) -> None:
        super().__init__(f"message already stored: {message_id}")
        self.message_id = message_id


@dataclass(frozen=True)
class StoredMessageRecord:
    """One row of the messages table."""

    message_id: str
    chat_jid: str
    sender_jid: str
    message_content: bytes
    timestamp: int  # epoch seconds


class MessageStore:
    """Schema management and write path for the messages table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def ensure_schema(self) -> None:
        """Create the messages table and its indexes if missing.

        Idempotent; called on every startup.
        """
        with txn(self._engine) as conn:
            for statement in schema_statements(self._engine.dialect.name):
                conn.execute(text(statement))

    def append(self, record: StoredMessageRecord) -> None:
        """Insert a record.

        Raises:
            DuplicateMessageError: If record.message_id is already stored.
        """
        with txn(self._engine) as conn:
            result = conn.execute(
                text(
                    """
                    INSERT INTO messages (
                        message_id, chat_jid, sender_jid,
                        message_content, timestamp
                    )
                    VALUES (
                        :message_id, :chat_jid, :sender_jid,
                        :message_content, :timestamp
                    )
                    ON CONFLICT (message_id) DO NOTHING
                    """
                ),
                {
                    "message_id": record.message_id,
                    "chat_jid": record.chat_jid,
                    "sender_jid": record.sender_jid,
                    "message_content": record.message_content,
                    "timestamp": record.timestamp,
                },
            )
            if result.rowcount == 0:
                raise DuplicateMessageError(record.message_id)

    def count(self) -> int:
        """Return the number of stored messages."""
        with txn(self._engine) as conn:
            return int(conn.execute(text("SELECT count(*) FROM messages")).scalar_one())

"""Tests for the messages repository (SQLite-backed)."""

import pytest
from sqlalchemy import text

from helpers import record
from wabridge.infra.repositories.messages_repository import (
    DuplicateMessageError,
    MessageStore,
)


class TestEnsureSchema:
    def test_idempotent(self, engine):
        store = MessageStore(engine)
        store.ensure_schema()
        store.ensure_schema()
        assert store.count() == 0

    def test_indexes_created(self, store, engine):
        with engine.connect() as conn:
            names = {
                row[0]
                for row in conn.execute(
                    text("SELECT name FROM sqlite_master WHERE type = 'index'")
                )
            }
        assert {
            "idx_messages_chat_jid",
            "idx_messages_sender_jid",
            "idx_messages_timestamp",
        } <= names


class TestAppend:
    def test_append_stores_raw_bytes(self, store, engine):
        rec = record("M1", raw=b'{"conversation":"hi"}', ts=1_700_000_123)
        store.append(rec)

        with engine.connect() as conn:
            row = conn.execute(
                text(
                    "SELECT message_id, chat_jid, sender_jid, message_content, timestamp "
                    "FROM messages"
                )
            ).one()
        assert row[0] == "M1"
        assert row[1] == rec.chat_jid
        assert row[2] == rec.sender_jid
        assert bytes(row[3]) == b'{"conversation":"hi"}'
        assert row[4] == 1_700_000_123

    def test_duplicate_keeps_exactly_one_row(self, store):
        store.append(record("DUP", message={"conversation": "first"}))

        with pytest.raises(DuplicateMessageError) as exc:
            store.append(record("DUP", message={"conversation": "second"}))

        assert exc.value.message_id == "DUP"
        assert store.count() == 1

    def test_duplicate_does_not_overwrite(self, store, engine):
        store.append(record("DUP", raw=b"first"))
        with pytest.raises(DuplicateMessageError):
            store.append(record("DUP", raw=b"second"))

        with engine.connect() as conn:
            content = conn.execute(
                text("SELECT message_content FROM messages WHERE message_id = 'DUP'")
            ).scalar_one()
        assert bytes(content) == b"first"

    def test_count(self, store):
        for i in range(3):
            store.append(record(f"M{i}"))
        assert store.count() == 3

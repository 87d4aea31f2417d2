"""History query engine over the messages table.

Results are always chronological (ascending timestamp). With a positive
limit the engine first selects the `limit` most recent matching rows and
then re-sorts that subset ascending, so "most recent N" and "chronological
order" hold together.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable

from sqlalchemy import text
from sqlalchemy.engine import Engine

from wabridge.infra.db import txn
from wabridge.infra.repositories.messages_repository import StoredMessageRecord
from wabridge.infra.time import format_display
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context
from wabridge.whatsapp.classifier import PayloadDecodeError, decode_stored
from wabridge.whatsapp.jid import is_same_user

logger = get_logger(__name__)

DEFAULT_LIMIT = 10

PARSE_ERROR_CONTENT = {"error": "Failed to parse message content"}

_COLUMNS = "message_id, timestamp, sender_jid, chat_jid, message_content"


def build_query(
    chat_jid: str = "",
    sender_jid: str = "",
    limit: int = DEFAULT_LIMIT,
    start_time: int = 0,
    end_time: int = 0,
) -> tuple[str, dict[str, Any]]:
    """Build the SQL and bind parameters for a history query.

    Empty strings and non-positive bounds mean "no constraint".
    """
    conditions: list[str] = []
    params: dict[str, Any] = {}

    if chat_jid:
        conditions.append("chat_jid = :chat_jid")
        params["chat_jid"] = chat_jid
    if sender_jid:
        conditions.append("sender_jid = :sender_jid")
        params["sender_jid"] = sender_jid
    if start_time > 0:
        conditions.append("timestamp >= :start_time")
        params["start_time"] = start_time
    if end_time > 0:
        conditions.append("timestamp <= :end_time")
        params["end_time"] = end_time

    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    base = f"SELECT {_COLUMNS} FROM messages{where}"

    if limit > 0:
        params["limit"] = limit
        sql = (
            f"SELECT {_COLUMNS} FROM ("
            f"{base} ORDER BY timestamp DESC, message_id DESC LIMIT :limit"
            ") sub ORDER BY timestamp ASC, message_id ASC"
        )
    else:
        sql = f"{base} ORDER BY timestamp ASC, message_id ASC"

    return sql, params


class HistoryQuery:
    """Filtered, bounded, chronological reads of stored messages.

    own_jid is called per query, so isFromMe follows the session identity
    at read time rather than anything stored.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        own_jid: Callable[[], str | None],
        display_timezone: str = "Asia/Kolkata",
    ) -> None:
        self._engine = engine
        self._own_jid = own_jid
        self._display_timezone = display_timezone

    def query(
        self,
        chat_jid: str = "",
        sender_jid: str = "",
        limit: int = DEFAULT_LIMIT,
        start_time: int = 0,
        end_time: int = 0,
    ) -> list[dict[str, Any]]:
        """Return decoded messages matching the filters, oldest first.

        A row whose payload cannot be decoded is still returned, with an
        error marker as its content.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: On storage failure.
        """
        sql, params = build_query(chat_jid, sender_jid, limit, start_time, end_time)
        with txn(self._engine) as conn:
            rows = conn.execute(text(sql), params).fetchall()

        own_jid = self._own_jid()
        return [self._render(row, own_jid) for row in rows]

    def recent(
        self,
        chat_jid: str,
        limit: int = DEFAULT_LIMIT,
        pending: Iterable[StoredMessageRecord] = (),
    ) -> list[dict[str, Any]]:
        """Last `limit` messages of a chat, oldest first.

        pending are records accepted for storage but possibly not committed
        yet; they are merged with the stored rows (stored row wins on the
        same id) before the limit is applied.
        """
        rows = self.query(chat_jid=chat_jid, limit=limit)
        extra = [r for r in pending if r.chat_jid == chat_jid]
        if not extra:
            return rows

        own_jid = self._own_jid()
        merged = {row["id"]: row for row in rows}
        for record in extra:
            if record.message_id not in merged:
                merged[record.message_id] = self._render(
                    (
                        record.message_id,
                        record.timestamp,
                        record.sender_jid,
                        record.chat_jid,
                        record.message_content,
                    ),
                    own_jid,
                )

        ordered = sorted(merged.values(), key=lambda r: (r["unixTimestamp"], r["id"]))
        return ordered[-limit:] if limit > 0 else ordered

    def _render(self, row: Any, own_jid: str | None) -> dict[str, Any]:
        message_id, timestamp, sender, chat, payload = row
        timestamp = int(timestamp or 0)

        try:
            content: dict[str, str] = decode_stored(payload).to_dict()
        except PayloadDecodeError as e:
            logger.warning(
                "stored message payload could not be decoded",
                extra={
                    "extra_fields": safe_log_context(
                        message_id=message_id,
                        error=str(e)[:120],
                    )
                },
            )
            content = dict(PARSE_ERROR_CONTENT)

        return {
            "id": message_id,
            "timestamp": format_display(timestamp, self._display_timezone),
            "unixTimestamp": timestamp,
            "sender": sender,
            "chat": chat,
            "isFromMe": is_same_user(sender, own_jid),
            "content": content,
        }

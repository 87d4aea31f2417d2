"""Event ingestion pipeline.

Per inbound message: received -> classified -> (dropped | forwarded) -> persisted.

- key-distribution payloads are dropped before any side effect;
- the normalized message and the last messages of its chat are forwarded to
  the consumer (best effort, at most once);
- the raw payload is then handed to the persistence pool, so storage never
  delays forwarding or the next event.

Events are consumed sequentially from the session stream by a single thread.
Every failure inside handle() is logged and contained.
"""

from __future__ import annotations

import threading
from enum import Enum

from wabridge.domain.history import DEFAULT_LIMIT, HistoryQuery
from wabridge.infra.media_cache import MediaReferenceCache
from wabridge.infra.notifier import BestEffortNotifier
from wabridge.infra.repositories.messages_repository import StoredMessageRecord
from wabridge.infra.time import to_epoch
from wabridge.observability.correlation import correlation_scope, get_correlation_id
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import mask_jid, safe_log_context
from wabridge.tasks.persistence import PersistencePool, PersistJob
from wabridge.whatsapp.classifier import classify, serialize_message
from wabridge.whatsapp.jid import is_same_user
from wabridge.whatsapp.models import (
    Connected,
    Disconnected,
    InboundMessage,
    MediaHandle,
    MessageEvent,
    QRCodeEvent,
    SessionEvent,
)
from wabridge.whatsapp.session import Session

logger = get_logger(__name__)

STATUS_LOGGED_IN = "logged_in"
STATUS_DISCONNECTED = "disconnected"


class Outcome(str, Enum):
    """Terminal state of one handled message event."""

    DROPPED = "dropped"
    PERSIST_QUEUED = "persist_queued"
    PERSIST_SKIPPED = "persist_skipped"
    FAILED = "failed"


class IngestionPipeline:
    """Turns session events into consumer notifications and stored records."""

    def __init__(
        self,
        *,
        session: Session,
        cache: MediaReferenceCache[MediaHandle],
        history: HistoryQuery,
        notifier: BestEffortNotifier,
        persistence: PersistencePool,
        server_base_url: str,
        history_limit: int = DEFAULT_LIMIT,
        poll_interval: float = 0.5,
    ) -> None:
        self._session = session
        self._cache = cache
        self._history = history
        self._notifier = notifier
        self._persistence = persistence
        self._server_base_url = server_base_url
        self._history_limit = history_limit
        self._poll_interval = poll_interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Consume the session event stream on a dedicated thread."""
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="ingestion", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run(self) -> None:
        """Sequential consumer loop; returns once stop() is called."""
        logger.info("ingestion loop started")
        while not self._stop.is_set():
            event = self._session.next_event(timeout=self._poll_interval)
            if event is not None:
                self.dispatch(event)
        logger.info("ingestion loop stopped")

    def dispatch(self, event: SessionEvent) -> None:
        """Handle one session event under its own correlation id."""
        with correlation_scope():
            try:
                if isinstance(event, MessageEvent):
                    self.handle(event)
                elif isinstance(event, Connected):
                    self._on_connected(event)
                elif isinstance(event, Disconnected):
                    self._on_disconnected(event)
                elif isinstance(event, QRCodeEvent):
                    logger.info("pairing qr code received - forwarding to consumer")
                    self._notifier.qr(event.code)
            except Exception:
                logger.exception(
                    "session event handling failed",
                    extra={"extra_fields": safe_log_context(event=type(event).__name__)},
                )

    def handle(self, event: MessageEvent) -> Outcome:
        """Run the state machine for one inbound message event."""
        info = event.info
        log_ctx = safe_log_context(
            message_id=info.message_id,
            chat=mask_jid(info.chat_jid),
            sender=mask_jid(info.sender_jid),
            is_group=info.is_group,
        )

        try:
            content = classify(
                event.message,
                info.message_id,
                cache=self._cache,
                server_base_url=self._server_base_url,
            )
            if content is None:
                logger.info(
                    "ignoring sender key distribution message",
                    extra={"extra_fields": log_ctx},
                )
                return Outcome.DROPPED

            logger.info(
                "message received",
                extra={"extra_fields": {**log_ctx, "kind": content.type.value}},
            )

            inbound = InboundMessage(
                message_id=info.message_id,
                timestamp=info.timestamp,
                sender_jid=info.sender_jid,
                chat_jid=info.chat_jid,
                is_group=info.is_group,
                is_from_me=is_same_user(info.sender_jid, self._session.own_jid),
                content=content,
            )

            try:
                # snapshot queued records before reading the store: anything
                # not pending by now is already committed
                pending = self._persistence.pending(info.chat_jid)
                history = self._history.recent(
                    info.chat_jid,
                    self._history_limit,
                    pending=pending,
                )
            except Exception:
                logger.exception(
                    "error fetching chat history",
                    extra={"extra_fields": log_ctx},
                )
                history = []

            record = StoredMessageRecord(
                message_id=info.message_id,
                chat_jid=info.chat_jid,
                sender_jid=info.sender_jid,
                message_content=serialize_message(event.message),
                timestamp=to_epoch(info.timestamp),
            )
        except Exception:
            logger.exception("message handling failed", extra={"extra_fields": log_ctx})
            return Outcome.FAILED

        # Forwarding outcome never gates persistence.
        try:
            self._notifier.message(inbound.to_dict(), history)
        except Exception:
            logger.exception("message forwarding failed", extra={"extra_fields": log_ctx})

        queued = self._persistence.submit(
            PersistJob(record=record, correlation_id=get_correlation_id())
        )
        return Outcome.PERSIST_QUEUED if queued else Outcome.PERSIST_SKIPPED

    def _on_connected(self, event: Connected) -> None:
        if event.own_jid:
            self._session.set_own_jid(event.own_jid)
        logger.info(
            "login successful",
            extra={"extra_fields": safe_log_context(own=mask_jid(event.own_jid or ""))},
        )
        self._notifier.status(STATUS_LOGGED_IN)

    def _on_disconnected(self, event: Disconnected) -> None:
        logger.info(
            "disconnected",
            extra={"extra_fields": safe_log_context(reason=event.reason)},
        )
        self._notifier.status(STATUS_DISCONNECTED)

"""Bounded persistence pool.

Inbound payloads are appended to the message store off the forwarding path:
the ingestion pipeline submit()s a job and moves on, a fixed set of worker
threads drains the queue. When the queue is full the job is dropped (and
logged) instead of blocking ingestion.

Records stay visible through pending() from submit() until their worker is
done with them, so chat history never misses a message that is queued but
not yet committed.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass

from wabridge.infra.repositories.messages_repository import (
    DuplicateMessageError,
    MessageStore,
    StoredMessageRecord,
)
from wabridge.observability.correlation import correlation_scope
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import mask_jid, safe_log_context

logger = get_logger(__name__)

_STOP = object()


@dataclass(frozen=True)
class PersistJob:
    record: StoredMessageRecord
    correlation_id: str = ""


class PersistencePool:
    """Fixed pool of worker threads appending records to a MessageStore."""

    def __init__(
        self,
        store: MessageStore,
        *,
        workers: int = 4,
        max_queue: int = 1000,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._store = store
        self._workers = workers
        self._q: queue.Queue = queue.Queue(maxsize=max_queue)
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        # chat_jid -> message_id -> record, for jobs not yet finished
        self._pending: dict[str, dict[str, StoredMessageRecord]] = {}
        self._pending_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return bool(self._threads)

    def start(self) -> None:
        """Start the worker threads (no-op if already running)."""
        with self._lock:
            if self._threads:
                return
            for i in range(self._workers):
                thread = threading.Thread(
                    target=self._work,
                    name=f"persist-{i}",
                    daemon=True,
                )
                thread.start()
                self._threads.append(thread)

    def submit(self, job: PersistJob) -> bool:
        """Enqueue job without blocking.

        Returns:
            True if queued, False if the queue was full and the job dropped.
        """
        self._track(job.record)
        try:
            self._q.put_nowait(job)
        except queue.Full:
            self._untrack(job.record)
            logger.error(
                "persistence queue full - message not stored",
                extra={
                    "extra_fields": safe_log_context(
                        message_id=job.record.message_id,
                        queue_size=self._q.maxsize,
                    )
                },
            )
            return False
        return True

    def pending(self, chat_jid: str) -> list[StoredMessageRecord]:
        """Records of chat_jid that were submitted but are not finished yet."""
        with self._pending_lock:
            return list(self._pending.get(chat_jid, {}).values())

    def drain(self) -> None:
        """Block until every submitted job has been processed."""
        self._q.join()

    def stop(self) -> None:
        """Drain pending jobs, then stop and join the workers."""
        with self._lock:
            threads, self._threads = self._threads, []
        if not threads:
            return
        self._q.join()
        for _ in threads:
            self._q.put(_STOP)
        for thread in threads:
            thread.join()

    def _track(self, record: StoredMessageRecord) -> None:
        with self._pending_lock:
            self._pending.setdefault(record.chat_jid, {})[record.message_id] = record

    def _untrack(self, record: StoredMessageRecord) -> None:
        with self._pending_lock:
            chat = self._pending.get(record.chat_jid)
            if chat is None:
                return
            # a replayed id may have replaced the entry; leave that one alone
            if chat.get(record.message_id) is record:
                del chat[record.message_id]
            if not chat:
                del self._pending[record.chat_jid]

    def _work(self) -> None:
        while True:
            job = self._q.get()
            try:
                if job is _STOP:
                    return
                self._persist(job)
            finally:
                self._q.task_done()

    def _persist(self, job: PersistJob) -> None:
        record = job.record
        with correlation_scope(job.correlation_id):
            try:
                self._store.append(record)
                logger.info(
                    "message stored",
                    extra={
                        "extra_fields": safe_log_context(
                            message_id=record.message_id,
                            chat=mask_jid(record.chat_jid),
                            sender=mask_jid(record.sender_jid),
                        )
                    },
                )
            except DuplicateMessageError:
                logger.info(
                    "duplicate message ignored",
                    extra={"extra_fields": safe_log_context(message_id=record.message_id)},
                )
            except Exception:
                logger.exception(
                    "failed to store message",
                    extra={"extra_fields": safe_log_context(message_id=record.message_id)},
                )
            finally:
                self._untrack(record)

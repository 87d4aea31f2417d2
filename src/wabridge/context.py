"""Bridge context - every long-lived component, built once at startup.

Components receive what they need from here; there are no module-level
singletons for the session, store or cache.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from wabridge.config import Settings
from wabridge.domain.history import HistoryQuery
from wabridge.domain.ingestion import IngestionPipeline
from wabridge.infra.db import create_db_engine
from wabridge.infra.media_cache import MediaReferenceCache
from wabridge.infra.notifier import BestEffortNotifier
from wabridge.infra.repositories.messages_repository import MessageStore
from wabridge.tasks.persistence import PersistencePool
from wabridge.whatsapp.models import MediaHandle
from wabridge.whatsapp.session import EvolutionSession, Session


@dataclass
class BridgeContext:
    settings: Settings
    engine: Engine
    store: MessageStore
    cache: MediaReferenceCache[MediaHandle]
    session: Session
    notifier: BestEffortNotifier
    history: HistoryQuery
    persistence: PersistencePool
    pipeline: IngestionPipeline

    def start(self) -> None:
        """Start persistence workers, then the ingestion loop."""
        self.persistence.start()
        self.pipeline.start()

    def stop(self) -> None:
        """Stop ingestion, flush pending writes, release the engine."""
        self.pipeline.stop()
        self.persistence.stop()
        self.engine.dispose()


def build_context(
    settings: Settings,
    *,
    session: Session | None = None,
    engine: Engine | None = None,
    notifier: BestEffortNotifier | None = None,
) -> BridgeContext:
    """Wire all components from settings.

    session, engine and notifier may be injected (tests, alternative gateways).
    Nothing is started and no schema is created here.
    """
    if engine is None:
        engine = create_db_engine(settings.database_url)
    if session is None:
        session = EvolutionSession(
            base_url=settings.evolution_base_url,
            instance=settings.evolution_instance,
            api_key=settings.evolution_api_key,
            own_jid=settings.own_jid or None,
        )
    if notifier is None:
        notifier = BestEffortNotifier(
            settings.consumer_base_url,
            timeout=settings.consumer_http_timeout,
        )

    store = MessageStore(engine)
    cache: MediaReferenceCache[MediaHandle] = MediaReferenceCache()
    history = HistoryQuery(
        engine,
        own_jid=lambda: session.own_jid,
        display_timezone=settings.display_timezone,
    )
    persistence = PersistencePool(
        store,
        workers=settings.persist_workers,
        max_queue=settings.persist_queue_size,
    )
    pipeline = IngestionPipeline(
        session=session,
        cache=cache,
        history=history,
        notifier=notifier,
        persistence=persistence,
        server_base_url=settings.server_base_url,
        history_limit=settings.history_context_limit,
    )

    return BridgeContext(
        settings=settings,
        engine=engine,
        store=store,
        cache=cache,
        session=session,
        notifier=notifier,
        history=history,
        persistence=persistence,
        pipeline=pipeline,
    )

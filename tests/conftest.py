"""Shared pytest fixtures for bridge tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from helpers import OWN_JID, FakeSession, RecordingNotifier  # noqa: E402
from wabridge.config import Settings  # noqa: E402
from wabridge.context import build_context  # noqa: E402
from wabridge.infra.db import create_db_engine  # noqa: E402
from wabridge.infra.repositories.messages_repository import MessageStore  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    """SQLite engine on a per-test database file."""
    eng = create_db_engine(f"sqlite:///{tmp_path / 'bridge.db'}")
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    s = MessageStore(engine)
    s.ensure_schema()
    return s


@pytest.fixture
def settings():
    return Settings(
        consumer_base_url="http://agent.test",
        server_base_url="http://bridge.test",
        persist_workers=2,
        persist_queue_size=100,
    )


@pytest.fixture
def session():
    return FakeSession(own_jid=OWN_JID)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def context(settings, engine, session, notifier):
    """Fully wired context with schema ready and persistence workers running.

    The ingestion loop is not started; tests dispatch events directly.
    """
    ctx = build_context(settings, session=session, engine=engine, notifier=notifier)
    ctx.store.ensure_schema()
    ctx.persistence.start()
    yield ctx
    ctx.persistence.stop()


@pytest.fixture
def client(context):
    """TestClient over the context; lifespan not entered (workers already running)."""
    from fastapi.testclient import TestClient

    from wabridge.api.factory import create_app

    return TestClient(create_app(context))

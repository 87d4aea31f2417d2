"""Database access layer using SQLAlchemy Core with raw SQL (no ORM).

Provides:
- normalize_database_url(): DATABASE_URL -> SQLAlchemy URL
- create_db_engine(): engine for SQLite (default) or PostgreSQL (psycopg2)
- txn(): Context manager for short, safe transactions
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator
from urllib.parse import quote_plus, urlparse, urlunparse

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine

DEFAULT_DATABASE_URL = "sqlite:///whatsapp.db"


def normalize_database_url(url: str) -> str:
    """Normalize a DATABASE_URL for SQLAlchemy.

    - postgres:// and postgresql:// are pinned to the psycopg2 driver
    - DB_PASSWORD is injected when a PostgreSQL URL carries no password
    - sqlite URLs are returned unchanged

    Raises:
        ValueError: If url is empty.
    """
    if not url:
        raise ValueError("database url is empty")
    if url.startswith("sqlite:"):
        return url
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        url = "postgresql+psycopg2://" + url[len("postgresql://"):]

    db_password = os.environ.get("DB_PASSWORD", "")
    if db_password:
        parsed = urlparse(url)
        if parsed.hostname and not parsed.password:
            replaced = parsed._replace(
                netloc=f"{quote_plus(parsed.username or '')}:{quote_plus(db_password)}@{parsed.hostname}"
                + (f":{parsed.port}" if parsed.port else "")
            )
            url = urlunparse(replaced)
    return url


def create_db_engine(url: str) -> Engine:
    """Create an engine for the given DATABASE_URL.

    SQLite connections are shared across the API, ingestion and persistence
    threads, so check_same_thread is disabled for them.

    Raises:
        sqlalchemy.exc.ArgumentError: If the URL cannot be parsed.
    """
    url = normalize_database_url(url)
    if url.startswith("sqlite:"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


@contextmanager
def txn(engine: Engine) -> Iterator[Connection]:
    """Context manager for a short, safe transaction.

    Commits on successful exit, rolls back on exception.

    Example:
        with txn(engine) as conn:
            conn.execute(text("INSERT INTO t (x) VALUES (:x)"), {"x": 1})
    """
    with engine.begin() as conn:
        yield conn

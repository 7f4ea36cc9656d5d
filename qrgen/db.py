from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from qrgen.config import Settings
from qrgen.models import Base

logger = logging.getLogger(__name__)


def _configure_sqlite_engine(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()


def create_db_engine(settings: Settings) -> Engine:
    """Build the engine for `settings.database_url`.

    SQLite gets foreign keys switched on; an in-memory SQLite URL shares one
    connection so every session sees the same database. PostgreSQL sessions
    get a server-side statement timeout so a stuck query cannot hold a worker.
    """
    url = settings.database_url
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        _configure_sqlite_engine(engine)
        return engine

    connect_args = {}
    if url.startswith("postgresql"):
        connect_args["options"] = f"-c statement_timeout={settings.db_statement_timeout_ms}"
    return create_engine(
        url,
        connect_args=connect_args,
        pool_pre_ping=True,
        pool_timeout=settings.db_pool_timeout,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create tables if they do not already exist."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ensured on %s", engine.url.render_as_string(hide_password=True))


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Yield a session inside a transaction.
    Commits on success, rolls back on error and always closes the session.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

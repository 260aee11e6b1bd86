"""Engine and session management for the billing database."""

from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings

logger = structlog.get_logger(__name__)

Base = declarative_base()


def _sqlite_file(database_url: str | URL) -> Path | None:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or url.database in (None, "", ":memory:"):
        return None
    return Path(url.database)


def _build_engine(database_url: str) -> Engine:
    is_sqlite = make_url(database_url).get_backend_name() == "sqlite"
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    return create_engine(database_url, future=True, connect_args=connect_args)


def _build_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False, class_=Session)


engine = _build_engine(get_settings().database_url)
SessionLocal = _build_session_factory(engine)


def reset_engine(database_url: str) -> None:
    """Point the module at another database (used by tests)."""
    global engine, SessionLocal
    engine.dispose()
    engine = _build_engine(database_url)
    SessionLocal = _build_session_factory(engine)


def init_db() -> None:
    """Create the users, subscriptions and enterprise plan tables if missing."""
    from . import models  # noqa: F401

    sqlite_file = _sqlite_file(engine.url)
    if sqlite_file is not None:
        sqlite_file.parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)
    logger.info("database_initialized", backend=engine.url.get_backend_name(), tables=sorted(Base.metadata.tables))


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on success, roll back on error."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

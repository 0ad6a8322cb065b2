"""Engine/session helpers for the SQL backend."""
from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from linklounge.core.config import get_settings

Base = declarative_base()


def _resolve_url(database_url: str | None) -> str:
    url = (database_url or get_settings().database_url or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL must be configured to use the SQL backend.")
    return url


@lru_cache
def _engine_for(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, future=True, pool_pre_ping=True)
    engine = create_engine(url, future=True, pool_pre_ping=True, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


@lru_cache
def _sessionmaker_for(url: str):
    return sessionmaker(bind=_engine_for(url), autoflush=False, autocommit=False, expire_on_commit=False, future=True)


def get_engine(database_url: str | None = None):
    """Engine for ``database_url``, or for the configured DATABASE_URL when omitted."""
    return _engine_for(_resolve_url(database_url))


def clear_engines() -> None:
    _sessionmaker_for.cache_clear()
    _engine_for.cache_clear()


@contextmanager
def get_session(database_url: str | None = None) -> Session:
    session: Session = _sessionmaker_for(_resolve_url(database_url))()
    try:
        yield session
    finally:
        session.close()

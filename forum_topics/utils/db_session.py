from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Iterator, Optional
from functools import lru_cache
from contextlib import contextmanager

from forum_topics.config.settings import settings


@lru_cache
def get_engine() -> Engine:
    """Returns a cached instance of the engine."""
    return create_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    """Returns a cached instance of the session factory."""
    return sessionmaker(
        bind=get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


@contextmanager
def get_db_session_context_manager(existing_session: Optional[Session] = None) -> Iterator[Session]:
    """
    Provides an SQLAlchemy session within a context manager.

    If an `existing_session` is provided, it yields that session and the caller
    is responsible for its lifecycle (commit, rollback, close).
    Otherwise, it creates a new session, and ensures it is committed on
    successful exit, rolled back on error, and closed regardless.
    """
    if existing_session is not None:
        yield existing_session
        return

    factory = get_session_factory()
    with factory() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

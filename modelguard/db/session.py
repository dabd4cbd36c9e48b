"""Database session management."""
from functools import lru_cache
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from modelguard.config.settings import get_settings


def _build_engine(url: str) -> Engine:
    return create_engine(
        url,
        pool_pre_ping=True,
        echo=get_settings().DATABASE_ECHO,
    )


@lru_cache()
def get_default_engine() -> Engine:
    """Shared engine for the configured DATABASE_URL"""
    return _build_engine(get_settings().DATABASE_URL)


def get_engine(url: Optional[str] = None) -> Engine:
    """
    Create an engine for ``url``.

    Without a URL the shared engine for the configured DATABASE_URL is
    returned; the caller owns (and disposes) engines built for a URL.
    """
    if url is None:
        return get_default_engine()
    return _build_engine(url)


def create_session_factory(url: Optional[str] = None) -> sessionmaker:
    """Create a session factory bound to ``get_engine(url)``."""
    return sessionmaker(autoflush=False, bind=get_engine(url))


@lru_cache()
def get_session_factory() -> sessionmaker:
    """Shared session factory for the configured database"""
    return create_session_factory()


def get_db(session_factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Yield a database session and close it afterwards.

    Usage:
        for db in get_db():
            user.save(db)
    """
    factory = session_factory or get_session_factory()
    db = factory()
    try:
        yield db
    finally:
        db.close()

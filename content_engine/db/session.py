from __future__ import annotations

import asyncio
from collections.abc import Callable, Generator
from contextlib import AbstractContextManager, contextmanager
from typing import TypeVar

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from content_engine.config.settings import settings

T = TypeVar("T")

SessionFactory = Callable[[], AbstractContextManager[Session]]

# Lazy initialization to avoid import-time database connections
_engine = None
_SessionLocal = None


def build_engine(database_url: str) -> Engine:
    """Create an engine for ``database_url`` with the pool settings used everywhere."""
    connect_args = {}
    if "sqlite" in database_url.lower():
        # Engine calls run on worker threads via run_in_session
        connect_args = {"check_same_thread": False}
    else:
        connect_args = {
            "connect_timeout": 10,
            "application_name": "content-engine",
        }

    return create_engine(
        database_url,
        connect_args=connect_args,
        echo=False,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def _get_engine():
    """Get or create the database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        logger.info(f"Initializing database engine: {settings.database_url}")
        _engine = build_engine(settings.database_url)
        logger.info("Database engine initialized")
    return _engine


def get_engine():
    """Get or create the database engine (public API)."""
    return _get_engine()


def _get_session_local():
    """Get or create the session factory (lazy initialization)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_get_engine())
        logger.info("Database session factory initialized")
    return _SessionLocal


def init_db(engine: Engine | None = None) -> None:
    """Create all tables that do not exist yet on ``engine`` (default: the global one)."""
    from content_engine.db.models import Base

    Base.metadata.create_all(bind=engine or _get_engine())
    logger.info("Database schema ready")


@contextmanager
def _transaction(session: Session) -> Generator[Session, None, None]:
    try:
        yield session
        session.commit()
    except Exception as e:
        logger.debug(f"Rolling back database session after {type(e).__name__}")
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get database session context manager.

    Commits when the block exits normally. Any exception rolls the session
    back and is re-raised to the caller.
    """
    with _transaction(_get_session_local()()) as session:
        yield session


def make_session_factory(engine: Engine) -> SessionFactory:
    """Session factory bound to ``engine`` with the same commit/rollback rules as get_session."""
    local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def factory() -> AbstractContextManager[Session]:
        return _transaction(local())

    return factory


async def run_in_session(
    work: Callable[[Session], T],
    session_factory: SessionFactory | None = None,
) -> T:
    """Run ``work`` in its own session and transaction on a worker thread.

    ``work`` must return plain values (not ORM instances), since the session
    is closed by the time the result reaches the caller.
    """
    factory = session_factory or get_session

    def _run() -> T:
        with factory() as session:
            return work(session)

    return await asyncio.to_thread(_run)

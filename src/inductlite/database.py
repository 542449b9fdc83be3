"""Database engine and session factory.

Sessions are created per unit of work by the repositories; nothing here
holds a global session. Async callers go through run_in_session(), which
runs the blocking session work on the default thread pool.
"""

import asyncio
from contextlib import contextmanager
from typing import Callable, Generator, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models.base import Base

T = TypeVar("T")


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine with pooling appropriate for the backend.

    Pool settings only apply to PostgreSQL. In-memory SQLite shares a single
    connection so every session sees the same database.
    """
    engine_kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": echo,
    }

    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10

    return create_engine(database_url, **engine_kwargs)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def create_all(engine: Engine) -> None:
    """Create tables (tests and local development only; production uses migrations)."""
    Base.metadata.create_all(bind=engine)


@contextmanager
def get_db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Context manager for database sessions.

    Usage:
        with get_db_session(session_factory) as session:
            session.query(Company).all()

    Automatically commits on success, rolls back on exception.
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


async def run_in_session(session_factory: sessionmaker, work: Callable[[Session], T]) -> T:
    """Run work(session) inside get_db_session() on a worker thread.

    The event loop stays free while the query runs, so concurrent callers
    (map_bounded lanes, overlapping scheduler ticks) actually overlap.

    Usage:
        def _count(session):
            return session.scalar(select(func.count()).select_from(ExportJob))

        total = await run_in_session(session_factory, _count)
    """
    def _run() -> T:
        with get_db_session(session_factory) as session:
            return work(session)

    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, _run)

"""
TaskHub Database Session Management.

Single entry point for database initialisation plus a context manager for
transactional DB access. Uses the global EngineRegistry.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.orm import Session, sessionmaker

from taskhub.db.base import Base, engine_registry

ENGINE_NAME = "taskhub"


def init_db(
    db_url: str,
    create_tables: bool = False,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    pool_pre_ping: bool = True,
    name: str = ENGINE_NAME,
) -> sessionmaker:
    """
    Register the TaskHub engine and return its session factory.

    Args:
        db_url:        SQLAlchemy connection URL.
        create_tables: When True, run Base.metadata.create_all(). Use for
                       ``taskhub init`` and tests only.
        name:          Registry name of the engine.

    Returns:
        A ``sessionmaker`` bound to the engine.
    """
    # Table classes must be imported before create_all()
    import taskhub.db.models  # noqa: F401

    engine = engine_registry.register(
        name, db_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        pool_pre_ping=pool_pre_ping,
    )
    if create_tables:
        Base.metadata.create_all(engine)
    return engine_registry.get_session_factory(name)


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for DB sessions with auto-commit/rollback.

    Usage:
        with session_scope(factory) as session:
            session.execute(...)
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def close_all_sessions() -> None:
    """Dispose all engines. Used during shutdown."""
    engine_registry.dispose()

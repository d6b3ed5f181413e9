"""
Module: batch_kernel.db.engine
Responsibility: Engine construction and the process-wide session factory
    used by the launcher's durable job repository.
Architecture position: Kernel > DB.  May import from db/base.py only
    (create_tables imports the batch_engine models lazily).

Failure modes:
    - RuntimeError from get_engine/get_session_factory before
      init_engine_from_url().
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from batch_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_MEMORY_SQLITE_URLS = frozenset({"sqlite://", "sqlite:///:memory:"})

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an Engine without touching the module-level state.

    In-memory SQLite gets a StaticPool: one shared connection, otherwise each
    session would open its own empty database.
    """
    if database_url in _MEMORY_SQLITE_URLS:
        return create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def init_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """Build the process-wide engine and its session factory."""
    global _engine, _SessionFactory

    reset_engine()
    _engine = build_engine(database_url, echo=echo)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def _require_initialized() -> None:
    if _engine is None or _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")


def get_engine() -> Engine:
    _require_initialized()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    _require_initialized()
    return _SessionFactory


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    One transaction: commit on normal exit, roll back and re-raise otherwise.

    Uses the process-wide factory unless one is passed in.
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine | None = None) -> None:
    """Create the job/step execution tables if they do not exist."""
    from batch_kernel.db.base import Base

    import batch_engine.models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(engine or get_engine())


def reset_engine() -> None:
    """Dispose of the process-wide engine, if any."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None

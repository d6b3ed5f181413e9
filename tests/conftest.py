"""
Pytest fixtures for the batch engine test suite.

Provides:
- Deterministic clock and in-memory job repository
- In-memory SQLite session factory for the SQL repository
- Logging state reset between tests
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from batch_kernel.db.engine import build_engine, create_tables
from batch_kernel.domain.clock import DeterministicClock
from batch_kernel.logging_config import LogContext, reset_logging

from batch_engine.services.repository import InMemoryJobRepository
from batch_engine.services.runner import JobRunner


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def clock():
    return DeterministicClock(
        fixed_time=datetime(2026, 2, 1, 12, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def repository():
    return InMemoryJobRepository()


@pytest.fixture
def runner(repository, clock):
    return JobRunner(repository=repository, clock=clock)


@pytest.fixture
def engine():
    eng = build_engine("sqlite://")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)

"""
Shared test fixtures for Burnout Buddy.

This module provides common fixtures used across all test modules:
- Environment setup (dev mode, API secret)
- Database session and session factory (in-memory SQLite)
- History record builders
- Circuit breaker registry isolation

Usage:
    All fixtures are automatically available to any test in the tests/ directory.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# ---------------------------------------------------------------------------
# 1. Environment setup -- must run before any application imports
# ---------------------------------------------------------------------------

os.environ.setdefault("BUDDY_DEV_MODE", "1")
os.environ.setdefault("BUDDY_API_SECRET_KEY", "test-secret-key-for-jwt-signing-at-least-32-bytes-long")

# ---------------------------------------------------------------------------
# Application imports (after env vars are set)
# ---------------------------------------------------------------------------

from src.lib import circuit_breaker  # noqa: E402
from src.models.base import Base  # noqa: E402
from src.models.records import CheckInRecord, ResetLogRecord, UserSettingsRecord  # noqa: E402, F401
from src.services.history_store import create_session_factory  # noqa: E402
from tests.factories import build_check_in, build_reset  # noqa: E402

# ---------------------------------------------------------------------------
# 2. db_session -- in-memory SQLite session for unit tests
# ---------------------------------------------------------------------------


@pytest.fixture()
def db_session():
    """
    Provide a SQLAlchemy session backed by an in-memory SQLite database.

    A fresh database is created for every test that requests this fixture.
    """
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    TestingSession = sessionmaker(bind=engine)
    session = TestingSession()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture()
def session_factory():
    """A sessionmaker over a fresh shared in-memory database."""
    factory = create_session_factory("sqlite:///:memory:")
    yield factory
    factory.kw["bind"].dispose()


# ---------------------------------------------------------------------------
# 3. Record builders
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_check_in():
    """Factory fixture for MoodCheckIn records."""
    return build_check_in


@pytest.fixture()
def make_reset():
    """Factory fixture for ResetLog records."""
    return build_reset


# ---------------------------------------------------------------------------
# 4. Circuit breakers are process-global; isolate them per test
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _fresh_circuit_breakers():
    circuit_breaker._registry.clear()
    yield
    circuit_breaker._registry.clear()

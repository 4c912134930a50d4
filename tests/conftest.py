"""Pytest fixtures and configuration for Battle Plan tests."""

import os

# Must be set before anything from battleplan is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["BACKUP_ENABLED"] = "false"

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
import uuid

from battleplan.database.database import Base, get_db
from battleplan.database import models  # noqa: F401
from battleplan.database.repository import TaskRepository
from battleplan.database.storage import Storage
from battleplan.models.task import Task, TaskStatus
from battleplan.service.planner import Planner


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# Wednesday, 10:00
FIXED_NOW = datetime(2026, 10, 14, 10, 0)


class FixedClock:
    """Callable clock that tests can move around."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(scope="function")
def db_engine():
    """Fresh in-memory SQLite engine per test.

    StaticPool keeps a single connection, so every session made from it
    sees the same database.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def task_repository(db_session: Session):
    """Create a TaskRepository instance for testing."""
    return TaskRepository(db_session)


@pytest.fixture
def storage(db_session: Session):
    return Storage(db_session)


@pytest.fixture
def clock():
    return FixedClock(FIXED_NOW)


@pytest.fixture
def planner(storage, clock):
    """Planner over the test database with a fixed clock and no backups."""
    return Planner(storage, now=clock)


@pytest.fixture
def today(clock):
    return clock.now.date()


@pytest.fixture
def sample_task_base():
    """Base task data for creating test tasks.

    Returns a dict with default task attributes that can be overridden.
    """
    return {
        "id": str(uuid.uuid4()),
        "description": "Test Task",
        "status": TaskStatus.TODAY,
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }


@pytest.fixture
def rated_fields():
    """A complete rating: priority 14, 30 min at medium confidence (40 buffered)."""
    return {
        "impact": 4,
        "consequences": 3,
        "friction": 2,
        "leverage": 1,
        "energy_match": 1,
        "time_criticality": 0,
        "estimate_bucket": 30,
        "confidence": "medium",
    }


@pytest.fixture
def make_task(sample_task_base):
    """Factory for Task objects with a fresh id per call."""
    def _make(**overrides) -> Task:
        return Task(**{**sample_task_base, "id": str(uuid.uuid4()), **overrides})
    return _make


@pytest.fixture
def sample_task(make_task):
    """Create a sample Task object for testing."""
    return make_task()


@pytest.fixture
def test_client(db_session: Session, clock):
    """Create a FastAPI test client with overridden database, clock and backup dependencies."""
    from battleplan.api.app import app, get_auto_backup, get_clock

    # Override the get_db dependency to use our test database session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auto_backup] = lambda: None
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as client:
        yield client

    # Clean up dependency overrides
    app.dependency_overrides.clear()

"""Pytest configuration and shared fixtures."""

import os
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Generator, Optional

# The engine and the logging system are configured at import time, so the
# test environment must be in place before anything from the package loads.
_TEST_DIR = tempfile.mkdtemp(prefix="babysleep-test-")
_TEST_DB_URL = f"sqlite:///{Path(_TEST_DIR) / 'test.db'}"
os.environ["TEST_DATABASE_URL"] = _TEST_DB_URL
os.environ["BABYSLEEP_USER_DATA_DIR"] = _TEST_DIR
os.environ["BABYSLEEP_LOG_TO_FILE"] = "0"
os.environ["BABYSLEEP_STORE_BACKEND"] = "sqlalchemy"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from alembic import command
from alembic.config import Config

from baby_sleep_tracker.core.enums import SleepType
from baby_sleep_tracker.domain.models import SleepEntry, attributed_date
from baby_sleep_tracker.repositories.memory_impl import MemorySleepEntryRepository
from baby_sleep_tracker.utils.time_utils import FixedClock

# Default "now" for tests: 2024-01-11 15:00 wall-clock
DEFAULT_NOW = datetime(2024, 1, 11, 15, 0)


def _project_root() -> Path:
    return Path(__file__).parent.parent


def _run_alembic_migrations(db_url: str):
    """Run Alembic migrations programmatically for test database."""
    alembic_cfg = Config()
    alembic_cfg.set_main_option('script_location', str(_project_root() / 'alembic'))
    alembic_cfg.set_main_option('sqlalchemy.url', db_url)

    command.upgrade(alembic_cfg, 'head')


@pytest.fixture(scope="session")
def setup_test_env():
    """Migrate the temporary test database once per session."""
    _run_alembic_migrations(_TEST_DB_URL)
    yield _TEST_DB_URL


@pytest.fixture
def test_db(setup_test_env):
    """Create a test database session factory with migrations applied."""
    engine = create_engine(
        setup_test_env,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    yield TestingSessionLocal

    engine.dispose()


@pytest.fixture
def db_session(test_db):
    """Create a database session for a single test."""
    session = test_db()

    yield session

    session.close()


@pytest.fixture
def baby_id() -> str:
    """A fresh baby so tests sharing the database never see each other's entries."""
    return f"baby-{uuid.uuid4().hex[:12]}"


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(DEFAULT_NOW)


@pytest.fixture
def memory_repo() -> MemorySleepEntryRepository:
    return MemorySleepEntryRepository()


@pytest.fixture
def make_entry():
    """Factory for SleepEntry values with ``date`` derived from the start time."""

    def _maker(
        start: datetime,
        end: Optional[datetime] = None,
        type: SleepType = SleepType.NAP,
        baby_id: str = "baby-1",
        id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SleepEntry:
        return SleepEntry(
            id=id or str(uuid.uuid4()),
            baby_id=baby_id,
            type=type,
            start_time=start,
            end_time=end,
            date=attributed_date(start),
            notes=notes,
        )

    return _maker


@pytest.fixture
def client(test_db, clock) -> Generator[TestClient, None, None]:
    """Create a test client with database and clock dependency overrides."""
    from baby_sleep_tracker.main import app
    from baby_sleep_tracker.db.database import get_db
    from baby_sleep_tracker.api.entries import get_clock

    def override_get_db():
        # Use a fresh session per request in tests
        db = test_db()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    # Clear overrides to avoid affecting other tests
    app.dependency_overrides.clear()


@pytest.fixture
def memory_client(clock) -> Generator[TestClient, None, None]:
    """Test client backed by the in-memory (local-only) store."""
    from baby_sleep_tracker.main import app
    from baby_sleep_tracker.api.entries import get_clock
    from baby_sleep_tracker.repositories.dependencies import get_sleep_entry_repository

    repository = MemorySleepEntryRepository()
    app.dependency_overrides[get_sleep_entry_repository] = lambda: repository
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()

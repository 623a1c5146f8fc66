"""Shared pytest fixtures and test helpers for ProManager tests."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from promanager.db import Base, create_engine_with_path
from promanager.models import CreateProject, CreateTask
from promanager.services.store import TaskStore

#: The time the test clock starts at: noon UTC, so "today" has room on both sides.
NOON: datetime = datetime(2026, 3, 10, 12, 0, 0, tzinfo=UTC)


class FrozenClock:
    """
    Controllable clock for the task store.

    Each call returns the current instant and then moves it forward by
    ``step``, so consecutive store operations get strictly increasing
    timestamps.

    Args:
        now: Starting instant
        step: How far to move after each call

    """

    def __init__(
        self, now: datetime = NOON, step: timedelta = timedelta(milliseconds=1)
    ) -> None:
        self.now = now
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current

    def advance(self, **kwargs) -> None:
        """Move the clock forward by ``timedelta(**kwargs)``."""
        self.now += timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        """Jump to ``now``."""
        self.now = now


@pytest.fixture
def clock():
    """Create a clock starting at noon UTC."""
    return FrozenClock()


@pytest.fixture
def store(tmp_path, clock):
    """Create a task store on a temporary database file."""
    task_store = TaskStore(tmp_path / "test.db", clock=clock)
    yield task_store
    task_store.close()


@pytest.fixture
def db_session(tmp_path):
    """Create a temporary database and session for testing."""
    engine = create_engine_with_path(tmp_path / "models.db")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    session = SessionLocal()

    yield session

    session.close()
    engine.dispose()


# Test helper functions (not fixtures, but available for import)


def create_test_project(store, name="Test Project", color="#3B82F6", description=None):
    """
    Helper to create a project with defaults.

    Args:
        store: TaskStore
        name: Project name
        color: Color token
        description: Optional description

    Returns:
        Created Project instance
    """
    return store.create_project(
        CreateProject(name=name, color=color, description=description)
    )


def create_test_task(store, title="Test Task", **kwargs):
    """
    Helper to create a task with defaults.

    Args:
        store: TaskStore
        title: Task title
        **kwargs: Any other :class:`CreateTask` field

    Returns:
        Created Task instance
    """
    return store.create_task(CreateTask(title=title, **kwargs))

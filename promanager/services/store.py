"""Task store: the persistence facade for projects and tasks."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from promanager.db import (
    Base,
    create_engine_with_path,
    get_project_db_path,
    normalize_timestamps,
)
from promanager.exc import (
    ConstraintViolation,
    DoesNotExist,
    InitializationFailure,
    LockContention,
)
from promanager.models import (
    CreateProject,
    CreateTask,
    Project,
    Task,
    TaskStats,
    UpdateProject,
    UpdateTask,
)
from promanager.services.settings import StoreSettings
from promanager.utils import ensure_utc, today_window, upcoming_window, utc_now

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from datetime import datetime
    from types import TracebackType

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite-backed store for projects and tasks.

    Every public method runs under one process-wide lock and in its own
    session, which is committed on success and rolled back on any error.
    Objects returned are detached from that session, so callers get
    independent copies.

    Timestamps already in the file are rewritten to the fixed-width UTC form
    on open, so date-range queries see every row.

    Args:
        db_path: Path to the SQLite file; created if absent.  If None, the
            platform default is used.

    Keyword Args:
        clock: Returns the current time; defaults to :func:`utc_now`
        lock_timeout: Seconds to wait for the store lock before raising
            :class:`~promanager.exc.LockContention`.  None waits forever.

    Raises:
        InitializationFailure: the file could not be opened or the schema
            could not be created

    """

    def __init__(
        self,
        db_path: Path | str | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        lock_timeout: float | None = None,
    ) -> None:
        #: Returns the current time.
        self.clock = clock
        #: Seconds to wait for the lock, or None to wait forever.
        self.lock_timeout = lock_timeout
        #: The lock serializing every store operation.
        self._lock = threading.Lock()
        try:
            #: The path to the SQLite database file.
            self.db_path = (
                Path(db_path) if db_path is not None else get_project_db_path()
            )
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            #: The SQLAlchemy engine.
            self.engine = create_engine_with_path(self.db_path)
            Base.metadata.create_all(self.engine)
            normalize_timestamps(self.engine)
        except (OSError, ValueError, SQLAlchemyError, sqlite3.Error) as e:
            logger.exception(f"Failed to initialize task store at {db_path}")
            raise InitializationFailure(db_path, str(e)) from e
        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )
        logger.info(f"Task store ready: {self.db_path}")

    @classmethod
    def from_settings(
        cls,
        settings: StoreSettings | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> TaskStore:
        """
        Build a store from persisted settings.

        Args:
            settings: Settings to read; if None, the application settings are used

        Keyword Args:
            clock: Returns the current time

        Returns:
            A ready :class:`TaskStore`

        """
        if settings is None:
            settings = StoreSettings()
        try:
            db_path = settings.get_db_path()
        except (OSError, ValueError) as e:
            raise InitializationFailure("<settings>", str(e)) from e
        return cls(db_path, clock=clock, lock_timeout=settings.get_lock_timeout())

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        self.engine.dispose()

    def __enter__(self) -> TaskStore:
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Context manager exit."""
        self.close()

    # ===============================
    # Internals
    # ===============================

    def _now(self) -> datetime:
        return ensure_utc(self.clock())  # type: ignore[return-value]

    def _acquire(self) -> None:
        """
        Acquire the store lock.

        Raises:
            LockContention: ``lock_timeout`` elapsed first

        """
        if self.lock_timeout is None:
            self._lock.acquire()
        elif not self._lock.acquire(timeout=self.lock_timeout):
            raise LockContention(self.lock_timeout)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """
        Hold the lock and a session for the duration of one operation.

        Yields:
            A session that is committed when the block exits normally

        Raises:
            ConstraintViolation: the database rejected the write

        """
        self._acquire()
        try:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise ConstraintViolation(str(e.orig)) from e
            except BaseException:
                session.rollback()
                raise
            finally:
                session.close()
        finally:
            self._lock.release()

    # ===============================
    # Projects
    # ===============================

    def create_project(self, data: CreateProject) -> Project:
        """
        Create a project.

        Args:
            data: The project fields

        Returns:
            The new project, with its ID and timestamps

        """
        with self._session() as session:
            project = Project.create(session, data, self._now())
        logger.debug(f"Created project {project.id}")
        return project

    def list_projects(self) -> list[Project]:
        """
        Get all projects, newest first.
        """
        with self._session() as session:
            return Project.list(session)

    def get_project(self, project_id: str) -> Project:
        """
        Get a project by ID.

        Args:
            project_id: Project ID

        Returns:
            The project

        Raises:
            DoesNotExist: no project has that ID

        """
        with self._session() as session:
            project = Project.get(session, project_id)
            if project is None:
                raise DoesNotExist("Project", project_id)  # noqa: EM101
            return project

    def update_project(self, data: UpdateProject) -> Project:
        """
        Apply a partial update to a project.

        Args:
            data: The update; only supplied fields change

        Returns:
            The updated project

        Raises:
            DoesNotExist: no project has ``data.id``

        """
        with self._session() as session:
            project = Project.get(session, data.id)
            if project is None:
                raise DoesNotExist("Project", data.id)  # noqa: EM101
            project.apply(data, self._now())
        logger.debug(f"Updated project {project.id}")
        return project

    def delete_project(self, project_id: str) -> None:
        """
        Delete a project and all of its tasks.

        The tasks go first, then the project, in one transaction.  Deleting
        a nonexistent project does nothing.

        Args:
            project_id: Project ID

        """
        with self._session() as session:
            n_tasks = Task.delete_for_project(session, project_id)
            n_projects = Project.delete_by_id(session, project_id)
        logger.debug(
            f"Deleted project {project_id} ({n_projects} row(s), {n_tasks} task(s))"
        )

    def project_task_counts(self) -> dict[str, tuple[int, int]]:
        """
        Count tasks per project.

        Returns:
            Mapping of project ID to ``(task_count, completed_task_count)``;
            projects with no tasks are absent

        """
        with self._session() as session:
            return Task.counts_by_project(session)

    # ===============================
    # Tasks
    # ===============================

    def create_task(self, data: CreateTask) -> Task:
        """
        Create a task.

        New tasks are never completed, whatever their status.

        Args:
            data: The task fields

        Returns:
            The new task, with its ID and timestamps

        """
        with self._session() as session:
            task = Task.create(session, data, self._now())
        logger.debug(f"Created task {task.id}")
        return task

    def list_tasks(self) -> list[Task]:
        """
        Get all tasks, newest first.
        """
        with self._session() as session:
            return Task.list(session)

    def get_task(self, task_id: str) -> Task:
        """
        Get a task by ID.

        Args:
            task_id: Task ID

        Returns:
            The task

        Raises:
            DoesNotExist: no task has that ID

        """
        with self._session() as session:
            task = Task.get(session, task_id)
            if task is None:
                raise DoesNotExist("Task", task_id)  # noqa: EM101
            return task

    def list_tasks_by_project(self, project_id: str) -> list[Task]:
        """
        Get the tasks of a project, newest first.

        Args:
            project_id: Project ID; unknown IDs give an empty list

        Returns:
            List of tasks

        """
        with self._session() as session:
            return Task.list_by_project(session, project_id)

    def update_task(self, data: UpdateTask) -> Task:
        """
        Apply a partial update to a task.

        Setting ``completed`` goes through :meth:`Task.set_completed`, which
        maintains ``completed_at``.

        Args:
            data: The update; only supplied fields change

        Returns:
            The updated task

        Raises:
            DoesNotExist: no task has ``data.id``
            ConstraintViolation: a supplied value is invalid

        """
        with self._session() as session:
            task = Task.get(session, data.id)
            if task is None:
                raise DoesNotExist("Task", data.id)  # noqa: EM101
            task.apply(data, self._now())
        logger.debug(f"Updated task {task.id}: {sorted(data.supplied())}")
        return task

    def delete_task(self, task_id: str) -> None:
        """
        Delete a task.  Deleting a nonexistent task does nothing.

        Args:
            task_id: Task ID

        """
        with self._session() as session:
            n_tasks = Task.delete_by_id(session, task_id)
        logger.debug(f"Deleted task {task_id} ({n_tasks} row(s))")

    def mark_complete(self, task_id: str, completed: bool) -> Task:  # noqa: FBT001
        """
        Set only the completion flag of a task.

        Args:
            task_id: Task ID
            completed: The new completion flag

        Returns:
            The updated task

        Raises:
            DoesNotExist: no task has that ID

        """
        return self.update_task(UpdateTask(id=task_id, completed=completed))

    # ===============================
    # Derived views
    # ===============================

    def today_tasks(self) -> list[Task]:
        """
        Get tasks due during the current UTC day, soonest first.
        """
        start, end = today_window(self._now())
        with self._session() as session:
            return Task.due_between(session, start, end)

    def upcoming_tasks(self) -> list[Task]:
        """
        Get tasks due during the seven UTC days after today, soonest first.
        """
        start, end = upcoming_window(self._now())
        with self._session() as session:
            return Task.due_between(session, start, end)

    def stats(self) -> TaskStats:
        """
        Count tasks.

        All counts are taken under a single lock acquisition, so they agree
        with each other.

        Returns:
            A :class:`~promanager.models.inputs.TaskStats` snapshot

        """
        now = self._now()
        start, end = today_window(now)
        with self._session() as session:
            total = Task.count(session)
            completed = Task.count(session, Task.completed == True)  # noqa: E712
            today_count = Task.count(session, Task.due_window(start, end))
            overdue = Task.count(
                session,
                Task.due_date < now,
                Task.completed == False,  # noqa: E712
            )
        return TaskStats(
            total=total,
            completed=completed,
            pending=total - completed,
            today_count=today_count,
            overdue=overdue,
        )

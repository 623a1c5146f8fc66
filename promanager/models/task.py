"""Task model."""

from __future__ import annotations

import builtins
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Boolean,
    ColumnElement,
    ForeignKey,
    String,
    case,
    delete,
    func,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column

from promanager.db import Base, LenientEnum, UTCTimestamp
from promanager.exc import ConstraintViolation
from promanager.models.enums import TaskPriority, TaskStatus
from promanager.models.inputs import is_set
from promanager.utils import ensure_utc, to_utc_iso

if TYPE_CHECKING:
    from enum import StrEnum

    from promanager.models.inputs import CreateTask, UpdateTask


def _coerce(enum_class: type[StrEnum], value: Any, field: str) -> Any:
    """
    Convert caller input to an enum member.

    Unlike :meth:`TaskStatus.from_db`, bad input from a caller is an error.

    Raises:
        ConstraintViolation: ``value`` is not a valid member

    """
    try:
        return enum_class(value)
    except ValueError as e:
        msg = f"Invalid {field}: {value!r}"
        raise ConstraintViolation(msg) from e


class Task(Base):
    """
    Represents a task.

    A task has these characteristics:
    - A title and an optional description
    - An optional project ID (a soft reference; it is never checked)
    - A status and a priority
    - An optional due date
    - A completion flag, and the time it was completed

    ``completed_at`` is derived: it is stamped when ``completed`` goes from
    false to true and cleared when ``completed`` is set to false.  It can only
    change through :meth:`set_completed`.
    """

    __tablename__ = "tasks"

    #: The task ID (a UUID4 string).
    id: Mapped[str] = mapped_column(String, primary_key=True)
    #: The task title.
    title: Mapped[str] = mapped_column(String, nullable=False)
    #: Optional description.
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    #: The owning project ID, if any.
    project_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("projects.id"), nullable=True, index=True
    )
    #: The workflow status.
    status: Mapped[TaskStatus] = mapped_column(
        LenientEnum(TaskStatus), nullable=False, default=TaskStatus.TODO
    )
    #: The priority.
    priority: Mapped[TaskPriority] = mapped_column(
        LenientEnum(TaskPriority), nullable=False, default=TaskPriority.LOW
    )
    #: Optional due date.
    due_date: Mapped[datetime | None] = mapped_column(
        UTCTimestamp, nullable=True, index=True
    )
    #: Whether the task is completed.
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    #: When the task was completed.
    completed_at: Mapped[datetime | None] = mapped_column(UTCTimestamp, nullable=True)
    #: The date and time the task was created.
    created_at: Mapped[datetime] = mapped_column(UTCTimestamp, nullable=False)
    #: The date and time the task was last updated.
    updated_at: Mapped[datetime] = mapped_column(UTCTimestamp, nullable=False)

    def __repr__(self) -> str:
        return f"<Task id={self.id!r} title={self.title!r}>"

    @classmethod
    def get(cls, session: Session, task_id: str) -> Task | None:
        """
        Get a task by ID.

        Args:
            session: SQLAlchemy session
            task_id: Task ID

        Returns:
            Task or None if not found

        """
        return session.get(cls, task_id)

    @classmethod
    def list(cls, session: Session) -> builtins.list[Task]:
        """
        Get all tasks, newest first.
        """
        return builtins.list(
            session.scalars(select(cls).order_by(cls.created_at.desc())).all()
        )

    @classmethod
    def list_by_project(cls, session: Session, project_id: str) -> builtins.list[Task]:
        """
        Get the tasks of a project, newest first.

        Args:
            session: SQLAlchemy session
            project_id: Project ID; an unknown ID yields an empty list

        Returns:
            List of tasks

        """
        return builtins.list(
            session.scalars(
                select(cls)
                .where(cls.project_id == project_id)
                .order_by(cls.created_at.desc())
            ).all()
        )

    @classmethod
    def due_between(
        cls, session: Session, start: datetime, end: datetime
    ) -> builtins.list[Task]:
        """
        Get tasks with ``start <= due_date < end``, soonest first.

        Tasks without a due date are never included.

        Args:
            session: SQLAlchemy session
            start: Inclusive lower bound
            end: Exclusive upper bound

        Returns:
            List of tasks ordered by due date

        """
        return builtins.list(
            session.scalars(
                select(cls)
                .where(cls.due_window(start, end))
                .order_by(cls.due_date.asc())
            ).all()
        )

    @classmethod
    def due_window(cls, start: datetime, end: datetime) -> ColumnElement[bool]:
        """
        SQL criterion for ``start <= due_date < end``.
        """
        return (cls.due_date >= start) & (cls.due_date < end)

    @classmethod
    def count(cls, session: Session, *criteria: ColumnElement[bool]) -> int:
        """
        Count tasks matching all of ``criteria``.

        Args:
            session: SQLAlchemy session
            *criteria: SQL criteria; no criteria counts every task

        Returns:
            Number of matching tasks

        """
        stmt = select(func.count()).select_from(cls)
        if criteria:
            stmt = stmt.where(*criteria)
        return session.scalar(stmt) or 0

    @classmethod
    def counts_by_project(cls, session: Session) -> dict[str, tuple[int, int]]:
        """
        Count tasks and completed tasks per project.

        Tasks with no project are not counted.

        Args:
            session: SQLAlchemy session

        Returns:
            Mapping of project ID to ``(task_count, completed_task_count)``

        """
        stmt = (
            select(
                cls.project_id,
                func.count(),
                func.sum(case((cls.completed == True, 1), else_=0)),  # noqa: E712
            )
            .where(cls.project_id.is_not(None))
            .group_by(cls.project_id)
        )
        return {
            project_id: (int(total), int(done or 0))
            for project_id, total, done in session.execute(stmt)
        }

    @classmethod
    def delete_by_id(cls, session: Session, task_id: str) -> int:
        """
        Delete a task row.

        Returns:
            Number of deleted rows (0 if the task did not exist)

        """
        return session.execute(delete(cls).where(cls.id == task_id)).rowcount

    @classmethod
    def delete_for_project(cls, session: Session, project_id: str) -> int:
        """
        Delete every task of a project.

        Args:
            session: SQLAlchemy session
            project_id: Project ID

        Returns:
            Number of deleted tasks

        """
        result = session.execute(delete(cls).where(cls.project_id == project_id))
        return result.rowcount

    @classmethod
    def create(cls, session: Session, data: CreateTask, now: datetime) -> Task:
        """
        Create a new, uncompleted task.

        The task is added to the session and flushed, but not committed.

        Args:
            session: SQLAlchemy session
            data: The task fields
            now: Creation timestamp, used for both ``created_at`` and
                ``updated_at``

        Returns:
            The new :class:`~promanager.models.task.Task` object

        """
        task = cls(
            id=str(uuid.uuid4()),
            title=data.title,
            description=data.description,
            project_id=data.project_id,
            status=_coerce(TaskStatus, data.status, "status"),
            priority=_coerce(TaskPriority, data.priority, "priority"),
            due_date=ensure_utc(data.due_date),
            completed=False,
            completed_at=None,
            created_at=now,
            updated_at=now,
        )
        session.add(task)
        session.flush()
        return task

    def set_completed(self, completed: bool, now: datetime) -> None:
        """
        Set the completion flag and derive ``completed_at`` from it.

        - Completing a task stamps ``completed_at`` with ``now`` unless it is
          already set.
        - Un-completing a task clears ``completed_at``.

        Args:
            completed: The new completion flag
            now: The current time

        """
        self.completed = completed
        if completed:
            if self.completed_at is None:
                self.completed_at = now
        else:
            self.completed_at = None

    def apply(self, data: UpdateTask, now: datetime) -> None:
        """
        Apply a partial update.

        Only supplied fields change.  Supplying ``None`` (or an empty string)
        for ``description``, ``project_id`` or ``due_date`` clears it.
        ``updated_at`` is always stamped, even when nothing else changed.

        Args:
            data: The update; UNSET fields are left alone
            now: Update timestamp

        Raises:
            ConstraintViolation: a required field was supplied as None, an
                enum field holds an unknown value, or ``completed`` is not a
                bool

        """
        for field in ("title", "status", "priority", "completed"):
            if is_set(getattr(data, field)) and getattr(data, field) is None:
                msg = f"Task {field} cannot be null"
                raise ConstraintViolation(msg)
        if is_set(data.completed) and not isinstance(data.completed, bool):
            msg = f"Invalid completed: {data.completed!r}"
            raise ConstraintViolation(msg)

        if is_set(data.title):
            self.title = data.title
        if is_set(data.description):
            self.description = data.description or None
        if is_set(data.project_id):
            self.project_id = data.project_id or None
        if is_set(data.status):
            self.status = _coerce(TaskStatus, data.status, "status")
        if is_set(data.priority):
            self.priority = _coerce(TaskPriority, data.priority, "priority")
        if is_set(data.due_date):
            self.due_date = ensure_utc(data.due_date)
        if is_set(data.completed):
            self.set_completed(data.completed, now)
        self.updated_at = now

    def to_json(self) -> dict:
        """
        Serialize task to a JSON-compatible dictionary.

        Returns:
            Dictionary containing task data

        """
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "project_id": self.project_id,
            "status": self.status.value,
            "priority": self.priority.value,
            "due_date": to_utc_iso(self.due_date),
            "completed": self.completed,
            "completed_at": to_utc_iso(self.completed_at),
            "created_at": to_utc_iso(self.created_at),
            "updated_at": to_utc_iso(self.updated_at),
        }

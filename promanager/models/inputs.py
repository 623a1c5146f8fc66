"""
Typed inputs for task store operations.

Update inputs distinguish a field that was not supplied from a field supplied
as ``None``: every optional field defaults to :data:`UNSET`, and only fields
holding something else are applied.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from promanager.models.enums import TaskPriority, TaskStatus

if TYPE_CHECKING:
    from datetime import datetime


class _UnsetType:
    """Type of :data:`UNSET`; there is only ever one instance."""

    _instance: _UnsetType | None = None

    def __new__(cls) -> _UnsetType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


#: Marker for "field not supplied" in update inputs.
UNSET: Final[Any] = _UnsetType()


def is_set(value: Any) -> bool:
    """
    Check whether an update field was supplied.

    Args:
        value: The field value

    Returns:
        True unless ``value`` is :data:`UNSET`

    """
    return value is not UNSET


@dataclass(frozen=True)
class CreateProject:
    """Input for creating a project."""

    #: The project name.
    name: str
    #: The UI color token.
    color: str
    #: Optional free-text description.
    description: str | None = None


@dataclass(frozen=True)
class UpdateProject:
    """Input for a partial project update."""

    #: The ID of the project to update.
    id: str
    name: str = UNSET
    description: str | None = UNSET
    color: str = UNSET


@dataclass(frozen=True)
class CreateTask:
    """Input for creating a task."""

    #: The task title.
    title: str
    #: Optional free-text description.
    description: str | None = None
    #: Optional owning project ID; not checked for existence.
    project_id: str | None = None
    #: Initial status.
    status: TaskStatus | str = TaskStatus.TODO
    #: Priority.
    priority: TaskPriority | str = TaskPriority.LOW
    #: Optional due date; naive datetimes are taken as UTC.
    due_date: datetime | None = None


@dataclass(frozen=True)
class UpdateTask:
    """Input for a partial task update."""

    #: The ID of the task to update.
    id: str
    title: str = UNSET
    description: str | None = UNSET
    project_id: str | None = UNSET
    status: TaskStatus | str = UNSET
    priority: TaskPriority | str = UNSET
    due_date: datetime | None = UNSET
    completed: bool = UNSET

    def supplied(self) -> dict[str, Any]:
        """
        Get the fields that were supplied.

        Returns:
            Mapping of field name to value, without ``id`` and UNSET fields

        """
        return {
            name: value
            for name, value in vars(self).items()
            if name != "id" and is_set(value)
        }


@dataclass(frozen=True)
class TaskStats:
    """Aggregate task counts at one instant."""

    #: Number of tasks.
    total: int
    #: Number of completed tasks.
    completed: int
    #: ``total - completed``.
    pending: int
    #: Number of tasks due during the current UTC day.
    today_count: int
    #: Number of incomplete tasks whose due date has passed.
    overdue: int

    def to_json(self) -> dict[str, int]:
        """
        Serialize stats with the keys the desktop front end expects.

        Returns:
            Dictionary of counts

        """
        return {
            "total_tasks": self.total,
            "completed_tasks": self.completed,
            "pending_tasks": self.pending,
            "today_tasks": self.today_count,
            "overdue_tasks": self.overdue,
        }

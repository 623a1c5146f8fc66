"""Task status and priority enums."""

from __future__ import annotations

from enum import StrEnum
from typing import Final


class TaskStatus(StrEnum):
    """Workflow status of a task."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        """
        Decode stored text, falling back to :attr:`TODO` for anything unknown.

        Args:
            raw: The stored value

        Returns:
            The matching status, or :attr:`TODO`

        """
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO

    @property
    def label(self) -> str:
        """Human-readable label."""
        return STATUS_LABELS[self]


class TaskPriority(StrEnum):
    """Priority of a task."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        """
        Decode stored text, falling back to :attr:`LOW` for anything unknown.

        Args:
            raw: The stored value

        Returns:
            The matching priority, or :attr:`LOW`

        """
        if not raw:
            return cls.LOW
        try:
            return cls(raw)
        except ValueError:
            return cls.LOW

    @property
    def label(self) -> str:
        """Human-readable label."""
        return PRIORITY_LABELS[self]


#: Display labels for statuses.
STATUS_LABELS: Final[dict[TaskStatus, str]] = {
    TaskStatus.TODO: "To Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.DONE: "Done",
}

#: Display labels for priorities.
PRIORITY_LABELS: Final[dict[TaskPriority, str]] = {
    TaskPriority.LOW: "Low",
    TaskPriority.MEDIUM: "Medium",
    TaskPriority.HIGH: "High",
}

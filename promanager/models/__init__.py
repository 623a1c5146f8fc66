"""Data models for ProManager."""

from promanager.models.enums import TaskPriority, TaskStatus
from promanager.models.inputs import (
    UNSET,
    CreateProject,
    CreateTask,
    TaskStats,
    UpdateProject,
    UpdateTask,
)
from promanager.models.project import PROJECT_COLORS, Project
from promanager.models.task import Task

__all__ = [
    "PROJECT_COLORS",
    "UNSET",
    "CreateProject",
    "CreateTask",
    "Project",
    "Task",
    "TaskPriority",
    "TaskStats",
    "TaskStatus",
    "UpdateProject",
    "UpdateTask",
]

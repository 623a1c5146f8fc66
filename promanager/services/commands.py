"""
Command dispatch for the desktop shell.

The shell invokes operations by name with JSON-like payloads, and gets back
either a JSON-compatible result or a :class:`~promanager.exc.CommandError`
whose message is shown to the user.  No business logic lives here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from promanager.exc import (
    CommandError,
    ConstraintViolation,
    DoesNotExist,
    LockContention,
)
from promanager.models import (
    UNSET,
    CreateProject,
    CreateTask,
    UpdateProject,
    UpdateTask,
)
from promanager.utils import from_utc_iso

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from datetime import datetime

    from promanager.services.store import TaskStore

    CommandHandler = Callable[[Mapping[str, Any]], Any]

logger = logging.getLogger(__name__)

#: Errors that are turned into a :class:`CommandError`.
_USER_ERRORS = (
    DoesNotExist,
    ConstraintViolation,
    LockContention,
    SQLAlchemyError,
    ValueError,
)


def _require(payload: Mapping[str, Any], key: str) -> Any:
    """
    Get a required payload entry.

    Raises:
        CommandError: the entry is missing

    """
    if key not in payload:
        msg = f"missing field `{key}`"
        raise CommandError(msg)
    return payload[key]


def _section(payload: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    """
    Get a required nested object from a payload.

    Raises:
        CommandError: the entry is missing or not an object

    """
    value = _require(payload, key)
    if not isinstance(value, dict):
        msg = f"invalid type for `{key}`: expected an object"
        raise CommandError(msg)
    return value


def _parse_date(value: Any) -> datetime | None:
    """
    Parse an RFC 3339 string from a payload.

    Raises:
        CommandError: the value is neither null nor a valid timestamp

    """
    if value is None:
        return None
    if not isinstance(value, str):
        msg = f"invalid date: {value!r}"
        raise CommandError(msg)
    try:
        return from_utc_iso(value)
    except ValueError as e:
        msg = f"invalid date: {value!r}"
        raise CommandError(msg) from e


def _parse_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        msg = f"invalid type for `{key}`: expected a boolean"
        raise CommandError(msg)
    return value


def _optional(
    payload: Mapping[str, Any],
    key: str,
    parse: Callable[[Any], Any] | None = None,
) -> Any:
    """
    Get an update field, keeping "absent" distinct from "null".

    Returns:
        :data:`~promanager.models.inputs.UNSET` when ``key`` is absent,
        otherwise the (parsed) value, which may be None

    """
    if key not in payload:
        return UNSET
    value = payload[key]
    return parse(value) if parse is not None else value


class CommandDispatcher:
    """
    Maps command names to task store operations.

    Command names and payload shapes match the desktop front end:

    - ``create_project`` ``{"projectData": {...}}``
    - ``get_projects``
    - ``update_project`` ``{"projectData": {"id": ..., ...}}``
    - ``delete_project`` ``{"id": ...}``
    - ``create_task`` ``{"taskData": {...}}``
    - ``get_tasks``
    - ``get_tasks_by_project`` ``{"projectId": ...}``
    - ``update_task`` ``{"taskData": {"id": ..., ...}}``
    - ``delete_task`` ``{"id": ...}``
    - ``get_today_tasks``
    - ``get_upcoming_tasks``
    - ``mark_task_complete`` ``{"id": ..., "completed": ...}``
    - ``get_task_stats``

    Args:
        store: The task store to dispatch to

    """

    def __init__(self, store: TaskStore) -> None:
        #: The task store.
        self.store = store
        #: Command name to handler.
        self._handlers: dict[str, CommandHandler] = {
            "create_project": self._create_project,
            "get_projects": self._get_projects,
            "update_project": self._update_project,
            "delete_project": self._delete_project,
            "create_task": self._create_task,
            "get_tasks": self._get_tasks,
            "get_tasks_by_project": self._get_tasks_by_project,
            "update_task": self._update_task,
            "delete_task": self._delete_task,
            "get_today_tasks": self._get_today_tasks,
            "get_upcoming_tasks": self._get_upcoming_tasks,
            "mark_task_complete": self._mark_task_complete,
            "get_task_stats": self._get_task_stats,
        }

    @property
    def commands(self) -> list[str]:
        """Names of all registered commands."""
        return sorted(self._handlers)

    def invoke(self, name: str, payload: Mapping[str, Any] | None = None) -> Any:
        """
        Run a command.

        Args:
            name: Command name
            payload: Command arguments

        Returns:
            JSON-compatible result; None for deletes

        Raises:
            CommandError: the command is unknown, the payload is malformed, or
                the store reported an error

        """
        handler = self._handlers.get(name)
        if handler is None:
            msg = f"Unknown command: {name}"
            raise CommandError(msg)
        try:
            return handler(payload or {})
        except CommandError:
            raise
        except _USER_ERRORS as e:
            logger.debug(f"Command {name} failed: {e}")
            raise CommandError(str(e)) from e

    # ===============================
    # Projects
    # ===============================

    def _create_project(self, payload: Mapping[str, Any]) -> dict:
        data = _section(payload, "projectData")
        project = self.store.create_project(
            CreateProject(
                name=_require(data, "name"),
                color=_require(data, "color"),
                description=data.get("description"),
            )
        )
        return project.to_json()

    def _get_projects(self, payload: Mapping[str, Any]) -> list[dict]:
        return [project.to_json() for project in self.store.list_projects()]

    def _update_project(self, payload: Mapping[str, Any]) -> dict:
        data = _section(payload, "projectData")
        project = self.store.update_project(
            UpdateProject(
                id=_require(data, "id"),
                name=_optional(data, "name"),
                description=_optional(data, "description"),
                color=_optional(data, "color"),
            )
        )
        return project.to_json()

    def _delete_project(self, payload: Mapping[str, Any]) -> None:
        self.store.delete_project(_require(payload, "id"))

    # ===============================
    # Tasks
    # ===============================

    def _create_task(self, payload: Mapping[str, Any]) -> dict:
        data = _section(payload, "taskData")
        task = self.store.create_task(
            CreateTask(
                title=_require(data, "title"),
                description=data.get("description"),
                project_id=data.get("project_id"),
                status=_require(data, "status"),
                priority=_require(data, "priority"),
                due_date=_parse_date(data.get("due_date")),
            )
        )
        return task.to_json()

    def _get_tasks(self, payload: Mapping[str, Any]) -> list[dict]:
        return [task.to_json() for task in self.store.list_tasks()]

    def _get_tasks_by_project(self, payload: Mapping[str, Any]) -> list[dict]:
        project_id = _require(payload, "projectId")
        return [task.to_json() for task in self.store.list_tasks_by_project(project_id)]

    def _update_task(self, payload: Mapping[str, Any]) -> dict:
        data = _section(payload, "taskData")
        task = self.store.update_task(
            UpdateTask(
                id=_require(data, "id"),
                title=_optional(data, "title"),
                description=_optional(data, "description"),
                project_id=_optional(data, "project_id"),
                status=_optional(data, "status"),
                priority=_optional(data, "priority"),
                due_date=_optional(data, "due_date", _parse_date),
                completed=_optional(
                    data, "completed", lambda value: _parse_bool(value, "completed")
                ),
            )
        )
        return task.to_json()

    def _delete_task(self, payload: Mapping[str, Any]) -> None:
        self.store.delete_task(_require(payload, "id"))

    def _get_today_tasks(self, payload: Mapping[str, Any]) -> list[dict]:
        return [task.to_json() for task in self.store.today_tasks()]

    def _get_upcoming_tasks(self, payload: Mapping[str, Any]) -> list[dict]:
        return [task.to_json() for task in self.store.upcoming_tasks()]

    def _mark_task_complete(self, payload: Mapping[str, Any]) -> dict:
        completed = _parse_bool(_require(payload, "completed"), "completed")
        task = self.store.mark_complete(_require(payload, "id"), completed)
        return task.to_json()

    def _get_task_stats(self, payload: Mapping[str, Any]) -> dict[str, int]:
        return self.store.stats().to_json()

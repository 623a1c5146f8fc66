"""Project model."""

from __future__ import annotations

import builtins
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Final

from sqlalchemy import String, delete, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from promanager.db import Base, UTCTimestamp
from promanager.exc import ConstraintViolation
from promanager.models.inputs import is_set
from promanager.utils import to_utc_iso

if TYPE_CHECKING:
    from promanager.models.inputs import CreateProject, UpdateProject

#: Color tokens offered when creating a project, in display order.
PROJECT_COLORS: Final[tuple[str, ...]] = (
    "#3B82F6",  # Blue
    "#EF4444",  # Red
    "#10B981",  # Green
    "#F59E0B",  # Yellow
    "#8B5CF6",  # Purple
    "#F97316",  # Orange
    "#06B6D4",  # Cyan
    "#EC4899",  # Pink
    "#84CC16",  # Lime
    "#6366F1",  # Indigo
)


class Project(Base):
    """
    Represents a project.

    Tasks refer to a project through ``tasks.project_id``; there is no ORM
    relationship, so deleting the tasks of a project is up to the caller.
    """

    __tablename__ = "projects"

    #: The project ID (a UUID4 string).
    id: Mapped[str] = mapped_column(String, primary_key=True)
    #: The project name.
    name: Mapped[str] = mapped_column(String, nullable=False)
    #: Optional description.
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    #: The UI color token.
    color: Mapped[str] = mapped_column(String, nullable=False)
    #: The date and time the project was created.
    created_at: Mapped[datetime] = mapped_column(UTCTimestamp, nullable=False)
    #: The date and time the project was last updated.
    updated_at: Mapped[datetime] = mapped_column(UTCTimestamp, nullable=False)

    def __repr__(self) -> str:
        return f"<Project id={self.id!r} name={self.name!r}>"

    @classmethod
    def get(cls, session: Session, project_id: str) -> Project | None:
        """
        Get a project by ID.

        Args:
            session: SQLAlchemy session
            project_id: Project ID

        Returns:
            Project or None if not found

        """
        return session.get(cls, project_id)

    @classmethod
    def list(cls, session: Session) -> builtins.list[Project]:
        """
        Get all projects, newest first.
        """
        return builtins.list(
            session.scalars(select(cls).order_by(cls.created_at.desc())).all()
        )

    @classmethod
    def create(cls, session: Session, data: CreateProject, now: datetime) -> Project:
        """
        Create a new project.

        The project is added to the session and flushed, but not committed.

        Args:
            session: SQLAlchemy session
            data: The project fields
            now: Creation timestamp, used for both ``created_at`` and
                ``updated_at``

        Returns:
            The new :class:`~promanager.models.project.Project` object

        """
        project = cls(
            id=str(uuid.uuid4()),
            name=data.name,
            description=data.description,
            color=data.color,
            created_at=now,
            updated_at=now,
        )
        session.add(project)
        session.flush()
        return project

    @classmethod
    def delete_by_id(cls, session: Session, project_id: str) -> int:
        """
        Delete a project row; tasks are not touched.

        Args:
            session: SQLAlchemy session
            project_id: Project ID

        Returns:
            Number of deleted rows (0 if the project did not exist)

        """
        return session.execute(delete(cls).where(cls.id == project_id)).rowcount

    def apply(self, data: UpdateProject, now: datetime) -> None:
        """
        Apply a partial update.

        Only supplied fields change.  A supplied empty or ``None`` description
        clears it.  ``updated_at`` is always stamped, even when nothing else
        changed.

        Args:
            data: The update; UNSET fields are left alone
            now: Update timestamp

        Raises:
            ConstraintViolation: ``name`` or ``color`` was supplied as None

        """
        if is_set(data.name):
            if data.name is None:
                msg = "Project name cannot be null"
                raise ConstraintViolation(msg)
            self.name = data.name
        if is_set(data.description):
            self.description = data.description or None
        if is_set(data.color):
            if data.color is None:
                msg = "Project color cannot be null"
                raise ConstraintViolation(msg)
            self.color = data.color
        self.updated_at = now

    def to_json(self) -> dict:
        """
        Serialize project to a JSON-compatible dictionary.

        Returns:
            Dictionary containing project data

        """
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "created_at": to_utc_iso(self.created_at),
            "updated_at": to_utc_iso(self.updated_at),
        }

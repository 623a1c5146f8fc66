"""SQLAlchemy database setup for ProManager."""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, cast

from sqlalchemy import (
    Engine,
    String,
    create_engine,
    event,
    func,
    or_,
    select,
    type_coerce,
    update,
)
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from promanager.utils import from_utc_iso, to_utc_iso

if TYPE_CHECKING:
    import sqlite3

logger = logging.getLogger(__name__)

#: The default database name.
DEFAULT_DB_NAME: Final[str] = "promanager.db"

#: The application directory name used under the platform data directory.
APP_DIR_NAME: Final[str] = "ProManager"

#: Length of a stored timestamp, e.g. ``2024-01-15T10:30:45.000000+00:00``.
TIMESTAMP_WIDTH: Final[int] = 32


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


class UTCTimestamp(TypeDecorator):
    """
    Timezone-aware UTC datetime stored as fixed-width RFC 3339 text.

    The text form always carries microseconds and a ``+00:00`` offset, so
    comparing two stored values as strings gives the same answer as comparing
    them as instants.  The date-range queries rely on that.
    """

    impl = String
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            # Already-serialized values are normalized to the fixed width
            value = from_utc_iso(value)
        return to_utc_iso(cast("datetime", value))

    def process_result_value(self, value: Any, dialect: Dialect) -> datetime | None:
        return from_utc_iso(value)


class LenientEnum(TypeDecorator):
    """
    Text-coded enum column that never fails on load.

    Unrecognized stored text decodes to the enum's ``from_db`` fallback
    instead of raising.

    Args:
        enum_class: Enum class with a ``from_db`` classmethod

    """

    impl = String
    cache_ok = True

    def __init__(self, enum_class: type[Enum], *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        #: The enum class this column stores.
        self.enum_class = enum_class

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        if value is None:
            return None
        return self.enum_class(value).value

    def process_result_value(self, value: Any, dialect: Dialect) -> Enum | None:
        return self.enum_class.from_db(value)  # type: ignore[attr-defined]


def get_project_db_path() -> Path:
    """
    Get the path to the ProManager database.

    - On Windows, the database is created in the user's
        ``AppData/Local/ProManager`` directory.
    - On macOS, the database is created in the user's
        ``~/Library/Application Support/ProManager`` directory.
    - On Linux, the database is created in the user's
        ``~/.config/ProManager`` directory.
    - If the platform is not supported, raise a ValueError.

    Returns:
        Path to the database file

    """
    if sys.platform not in ["win32", "darwin", "linux"]:
        msg = f"Unsupported platform: {sys.platform}"
        raise ValueError(msg)
    if sys.platform == "win32":
        db_path = Path.home() / "AppData" / "Local" / APP_DIR_NAME
    elif sys.platform == "darwin":
        db_path = Path.home() / "Library" / "Application Support" / APP_DIR_NAME
    elif sys.platform == "linux":
        db_path = Path.home() / ".config" / APP_DIR_NAME
    db_path.mkdir(parents=True, exist_ok=True)
    return db_path / DEFAULT_DB_NAME


def create_engine_with_path(db_path: Path | None = None) -> Engine:
    """
    Create SQLAlchemy engine with proper SQLite settings.

    Foreign keys are declared in the schema but deliberately not enforced:
    a task's ``project_id`` is a soft reference.

    Args:
        db_path: Optional path to database file. If None, uses default path.

    Returns:
        SQLAlchemy engine

    """
    if db_path is None:
        db_path = get_project_db_path()

    # Create the file if it doesn't exist
    db_path.touch(exist_ok=True)

    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},  # Allow multi-threaded access
        echo=False,  # Set to True for SQL debugging
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(
        dbapi_conn: sqlite3.Connection | Any, _connection_record: Any
    ) -> None:
        """Set SQLite pragmas on connection."""
        cursor = cast("sqlite3.Cursor", dbapi_conn.cursor())
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


def normalize_timestamps(engine: Engine) -> int:
    """
    Rewrite stored timestamps that are not in the fixed-width UTC form.

    Date-range queries compare timestamps as text, which only orders
    correctly when every value has the form written by
    :class:`UTCTimestamp`.  Files written by other tools may hold any RFC 3339
    form instead (no fraction, nanoseconds, ``Z``, other offsets), so those
    values are parsed and written back.  Values that do not parse are left
    alone and logged.

    Args:
        engine: SQLAlchemy engine with the schema already created

    Returns:
        Number of values rewritten

    """
    rewritten = 0
    with engine.begin() as conn:
        for table in Base.metadata.sorted_tables:
            for column in table.columns:
                if not isinstance(column.type, UTCTimestamp):
                    continue
                # Read the raw text, bypassing UTCTimestamp's decoding
                raw = type_coerce(column, String)
                stmt = select(table.c.id, raw).where(
                    column.is_not(None),
                    or_(
                        func.length(raw) != TIMESTAMP_WIDTH,
                        func.substr(raw, 11, 1) != "T",
                        func.substr(raw, TIMESTAMP_WIDTH - 5) != "+00:00",
                    ),
                )
                for row_id, value in conn.execute(stmt).all():
                    try:
                        dt = from_utc_iso(value)
                    except (TypeError, ValueError):
                        logger.warning(
                            f"Unreadable {table.name}.{column.name} for {row_id}: "
                            f"{value!r}"
                        )
                        continue
                    conn.execute(
                        update(table)
                        .where(table.c.id == row_id)
                        .values({column.name: dt})
                    )
                    rewritten += 1
    if rewritten:
        logger.info(f"Normalized {rewritten} stored timestamp(s)")
    return rewritten

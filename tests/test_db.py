"""Unit tests for database setup."""

import sys
from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy import inspect, text

from promanager.db import (
    Base,
    LenientEnum,
    UTCTimestamp,
    create_engine_with_path,
    get_project_db_path,
    normalize_timestamps,
)
from promanager.models import TaskPriority, TaskStatus


class TestBase:
    """Test cases for Base declarative base."""

    def test_base_has_metadata(self):
        """Test Base has metadata attribute."""
        assert hasattr(Base, "metadata")
        assert Base.metadata is not None

    def test_base_knows_both_tables(self):
        """Test the model tables are registered on Base."""
        assert {"projects", "tasks"} <= set(Base.metadata.tables)


class TestGetProjectDbPath:
    """Test cases for get_project_db_path()."""

    def test_returns_path_on_darwin(self, monkeypatch, tmp_path):
        """Test returns correct path on macOS."""
        monkeypatch.setattr(sys, "platform", "darwin")
        with patch("pathlib.Path.home", return_value=tmp_path):
            db_path = get_project_db_path()
        assert isinstance(db_path, Path)
        assert "Library" in str(db_path)
        assert "Application Support" in str(db_path)
        assert "ProManager" in str(db_path)
        assert db_path.name == "promanager.db"

    def test_returns_path_on_linux(self, monkeypatch, tmp_path):
        """Test returns correct path on Linux."""
        monkeypatch.setattr(sys, "platform", "linux")
        with patch("pathlib.Path.home", return_value=tmp_path):
            db_path = get_project_db_path()
        assert db_path == tmp_path / ".config" / "ProManager" / "promanager.db"

    def test_returns_path_on_windows(self, monkeypatch, tmp_path):
        """Test returns correct path on Windows."""
        monkeypatch.setattr(sys, "platform", "win32")
        with patch("pathlib.Path.home", return_value=tmp_path):
            db_path = get_project_db_path()
        assert "AppData" in str(db_path)
        assert "Local" in str(db_path)
        assert db_path.name == "promanager.db"

    def test_raises_value_error_for_unsupported_platform(self, monkeypatch):
        """Test raises ValueError for unsupported platform."""
        monkeypatch.setattr(sys, "platform", "unsupported")
        with pytest.raises(ValueError, match="Unsupported platform"):
            get_project_db_path()

    def test_creates_directory_if_not_exists(self, monkeypatch, tmp_path):
        """Test creates directory if it doesn't exist."""
        monkeypatch.setattr(sys, "platform", "linux")
        with patch("pathlib.Path.home", return_value=tmp_path):
            db_path = get_project_db_path()
            assert db_path.parent.exists()
            assert not db_path.exists()


class TestCreateEngineWithPath:
    """Test cases for create_engine_with_path()."""

    def test_creates_engine_with_custom_path(self, tmp_path):
        """Test creates engine with custom path."""
        db_path = tmp_path / "test.db"
        engine = create_engine_with_path(db_path)
        assert engine is not None
        assert engine.url.database == str(db_path)
        engine.dispose()

    def test_creates_database_file_if_not_exists(self, tmp_path):
        """Test creates database file if it doesn't exist."""
        db_path = tmp_path / "new.db"
        assert not db_path.exists()
        engine = create_engine_with_path(db_path)
        assert db_path.exists()
        engine.dispose()

    def test_enables_write_ahead_logging(self, tmp_path):
        """Test every connection runs in WAL mode."""
        engine = create_engine_with_path(tmp_path / "wal.db")
        with engine.connect() as conn:
            mode = conn.execute(text("PRAGMA journal_mode")).scalar()
        assert mode == "wal"
        engine.dispose()

    def test_foreign_keys_are_not_enforced(self, tmp_path):
        """Test tasks may refer to projects that do not exist."""
        engine = create_engine_with_path(tmp_path / "fk.db")
        Base.metadata.create_all(engine)
        with engine.begin() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 0
            conn.execute(
                text(
                    "INSERT INTO tasks (id, title, project_id, status, priority, "
                    "completed, created_at, updated_at) VALUES ('t1', 'x', "
                    "'nowhere', 'todo', 'low', 0, '2026-01-01', '2026-01-01')"
                )
            )
        engine.dispose()

    def test_schema_has_indexes(self, tmp_path):
        """Test the task lookup columns are indexed."""
        engine = create_engine_with_path(tmp_path / "idx.db")
        Base.metadata.create_all(engine)
        indexed = {
            column
            for index in inspect(engine).get_indexes("tasks")
            for column in index["column_names"]
        }
        assert {"project_id", "due_date"} <= indexed
        engine.dispose()


class TestUTCTimestamp:
    """Test cases for the UTCTimestamp column type."""

    def test_binds_fixed_width_utc_text(self):
        """Test values are stored as fixed-width UTC text."""
        column_type = UTCTimestamp()
        value = datetime(2026, 3, 10, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        stored = column_type.process_bind_param(value, None)
        assert stored == "2026-03-10T12:00:00.000000+00:00"

    def test_binds_strings_normalized(self):
        """Test already-serialized values are normalized."""
        column_type = UTCTimestamp()
        stored = column_type.process_bind_param("2026-03-10T12:00:00Z", None)
        assert stored == "2026-03-10T12:00:00.000000+00:00"

    def test_binds_none(self):
        """Test None stays None."""
        assert UTCTimestamp().process_bind_param(None, None) is None

    def test_loads_aware_utc(self):
        """Test stored text loads as an aware UTC datetime."""
        loaded = UTCTimestamp().process_result_value(
            "2026-03-10T12:00:00.250000+00:00", None
        )
        assert loaded == datetime(2026, 3, 10, 12, 0, 0, 250000, tzinfo=UTC)
        assert loaded.tzinfo is not None

    def test_text_order_matches_time_order(self):
        """Test stored text sorts the same way as the instants."""
        column_type = UTCTimestamp()
        instants = [
            datetime(2026, 3, 10, 23, 59, 59, tzinfo=UTC),
            datetime(2026, 3, 10, 23, 59, 59, 500000, tzinfo=UTC),
            datetime(2026, 3, 11, 0, 0, 0, tzinfo=UTC),
            datetime(2026, 3, 10, 8, 0, tzinfo=timezone(timedelta(hours=-5))),
        ]
        stored = [column_type.process_bind_param(dt, None) for dt in instants]
        assert sorted(stored) == [
            column_type.process_bind_param(dt, None) for dt in sorted(instants)
        ]


class TestLenientEnum:
    """Test cases for the LenientEnum column type."""

    def test_binds_member_value(self):
        """Test members and their text values bind to the text value."""
        column_type = LenientEnum(TaskStatus)
        assert column_type.process_bind_param(TaskStatus.DONE, None) == "done"
        assert column_type.process_bind_param("in_progress", None) == "in_progress"

    def test_loads_known_value(self):
        """Test known text loads as the matching member."""
        column_type = LenientEnum(TaskPriority)
        assert column_type.process_result_value("high", None) is TaskPriority.HIGH

    def test_loads_unknown_value_as_fallback(self):
        """Test unknown text loads as the enum's fallback."""
        assert LenientEnum(TaskStatus).process_result_value("x", None) is (
            TaskStatus.TODO
        )
        assert LenientEnum(TaskPriority).process_result_value(None, None) is (
            TaskPriority.LOW
        )


class TestNormalizeTimestamps:
    """Test cases for normalize_timestamps()."""

    def test_rewrites_other_forms_once(self, tmp_path):
        """Test other RFC 3339 forms are rewritten and a rerun changes nothing."""
        engine = create_engine_with_path(tmp_path / "legacy.db")
        Base.metadata.create_all(engine)
        with engine.begin() as conn:
            conn.execute(
                text(
                    "INSERT INTO projects (id, name, color, created_at, updated_at) "
                    "VALUES ('p1', 'Home', '#fff', '2026-03-10 12:00:00+00:00', "
                    "'2026-03-10T12:00:00.000000+00:00')"
                )
            )

        assert normalize_timestamps(engine) == 1
        assert normalize_timestamps(engine) == 0
        with engine.connect() as conn:
            created_at = conn.execute(text("SELECT created_at FROM projects")).scalar()
        assert created_at == "2026-03-10T12:00:00.000000+00:00"
        engine.dispose()

    def test_leaves_unreadable_values(self, tmp_path):
        """Test values that do not parse are left as they are."""
        engine = create_engine_with_path(tmp_path / "bad.db")
        Base.metadata.create_all(engine)
        with engine.begin() as conn:
            conn.execute(
                text(
                    "INSERT INTO tasks (id, title, status, priority, completed, "
                    "due_date, created_at, updated_at) VALUES ('t1', 'x', 'todo', "
                    "'low', 0, 'next tuesday', '2026-03-10T12:00:00.000000+00:00', "
                    "'2026-03-10T12:00:00.000000+00:00')"
                )
            )

        assert normalize_timestamps(engine) == 0
        with engine.connect() as conn:
            due_date = conn.execute(text("SELECT due_date FROM tasks")).scalar()
        assert due_date == "next tuesday"
        engine.dispose()

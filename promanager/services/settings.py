"""Persisted settings for the task store."""

from pathlib import Path
from typing import Final, cast

from PySide6.QtCore import QSettings

from promanager.db import get_project_db_path

#: Organization name used for the default settings location.
ORGANIZATION_NAME: Final[str] = "ProManager"
#: Application name used for the default settings location.
APPLICATION_NAME: Final[str] = "ProManager"


class StoreSettings:
    """
    Settings the task store reads at startup.

    Keys:

    - ``store/db_path``: path of the SQLite file.  Unset means the platform
      default from :func:`~promanager.db.get_project_db_path`.
    - ``store/lock_timeout``: seconds to wait for the store lock.  ``0`` or
      unset means wait forever.

    Args:
        settings: Optional ``QSettings`` to read from.  If None, the
            application's native settings are used.

    """

    def __init__(self, settings: QSettings | None = None) -> None:
        if settings is None:
            settings = QSettings(ORGANIZATION_NAME, APPLICATION_NAME)
        #: The underlying settings store.
        self.settings = settings

    def get_db_path(self) -> Path:
        """
        Get the database path from settings.

        Returns:
            Path to the database file

        """
        raw = cast("str", self.settings.value("store/db_path", "", type=str))
        if raw:
            return Path(raw).expanduser()
        return get_project_db_path()

    def set_db_path(self, db_path: Path | str | None) -> None:
        """
        Set the database path; None restores the platform default.

        Args:
            db_path: Path to the database file, or None

        """
        if db_path is None:
            self.settings.remove("store/db_path")
        else:
            self.settings.setValue("store/db_path", str(db_path))

    def get_lock_timeout(self) -> float | None:
        """
        Get the lock timeout from settings.

        Returns:
            Timeout in seconds, or None to wait forever (default)

        """
        timeout = cast(
            "float", self.settings.value("store/lock_timeout", 0.0, type=float)
        )
        return timeout if timeout > 0 else None

    def set_lock_timeout(self, timeout: float | None) -> None:
        """
        Set the lock timeout.

        Args:
            timeout: Timeout in seconds; None or ``0`` waits forever

        """
        self.settings.setValue("store/lock_timeout", float(timeout or 0))

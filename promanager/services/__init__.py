"""Services package initialization."""

from promanager.services.commands import CommandDispatcher
from promanager.services.settings import StoreSettings
from promanager.services.store import TaskStore

__all__ = [
    "CommandDispatcher",
    "StoreSettings",
    "TaskStore",
]

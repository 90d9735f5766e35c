"""Long-running daemon: watcher, timer, HTTP trigger and CLI."""

from .api import create_app
from .timer import PeriodicTrigger
from .watcher import DirectoryWatcher, SyncTriggerHandler

__all__ = [
    "DirectoryWatcher",
    "PeriodicTrigger",
    "SyncTriggerHandler",
    "create_app",
]

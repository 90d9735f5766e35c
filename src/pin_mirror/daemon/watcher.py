"""Filesystem watcher that triggers a sync pass on local changes.

Uses a watchdog ``Observer`` scheduled recursively on the watched root.
Every relevant add, change, remove or move event calls
``engine.trigger()``; the engine drops triggers that arrive while a pass
is already running, so bursts of events cost at most one extra pass.

Hidden paths and ``.meta`` sidecars never trigger a pass.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from pin_mirror.sync.scanner import is_ignored_path

if TYPE_CHECKING:
    from pin_mirror.sync.engine import ReconciliationEngine

logger = logging.getLogger(__name__)


class SyncTriggerHandler(FileSystemEventHandler):
    """Translate watchdog events into ``trigger()`` calls.

    Args:
        trigger: Zero-argument callable, normally ``engine.trigger``.
        root: Watched root; event paths are made relative to it.
    """

    def __init__(self, trigger: Callable[[], object], root: Path) -> None:
        self.trigger = trigger
        self.root = Path(root)

    def _relative(self, path: str | bytes) -> str | None:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        try:
            rel = Path(path).relative_to(self.root)
        except ValueError:
            return None
        return rel.as_posix()

    def is_relevant(self, *paths: str | bytes) -> bool:
        """True if any of *paths* is a non-ignored path under the root."""
        for path in paths:
            rel = self._relative(path)
            if rel and rel != "." and not is_ignored_path(rel):
                return True
        return False

    def _fire(self, reason: str, *paths: str | bytes) -> None:
        if not self.is_relevant(*paths):
            return
        logger.debug("Change detected (%s): %s", reason, paths[-1])
        self.trigger()

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._fire("created", event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._fire("modified", event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._fire("deleted", event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._fire("moved", event.src_path, event.dest_path)


class DirectoryWatcher:
    """Own the watchdog observer for one engine.

    Args:
        engine: Engine whose ``trigger`` is called on changes.
        observer_factory: Builds the observer; overridable for tests.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        self.engine = engine
        self.root = engine.root
        self.handler = SyncTriggerHandler(engine.trigger, self.root)
        self._observer_factory = observer_factory
        self._observer = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = self._observer_factory()
        observer.schedule(self.handler, str(self.root), recursive=True)
        observer.start()
        self._observer = observer
        logger.info("Watching directory: %s", self.root)

    def stop(self, timeout: float = 10.0) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=timeout)
        self._observer = None
        logger.info("Stopped watching %s", self.root)

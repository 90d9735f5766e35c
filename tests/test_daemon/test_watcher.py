"""Tests for the watchdog-based change watcher."""

import threading
from types import SimpleNamespace
from unittest.mock import MagicMock, Mock

import pytest
from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from pin_mirror.daemon.watcher import DirectoryWatcher, SyncTriggerHandler


@pytest.fixture
def handler(watch_dir):
    return SyncTriggerHandler(Mock(), watch_dir)


class TestSyncTriggerHandler:
    def test_file_events_trigger(self, handler, watch_dir):
        handler.dispatch(FileCreatedEvent(str(watch_dir / "a.txt")))
        handler.dispatch(FileModifiedEvent(str(watch_dir / "sub" / "b.txt")))
        handler.dispatch(FileDeletedEvent(str(watch_dir / "c.txt")))

        assert handler.trigger.call_count == 3

    @pytest.mark.parametrize(
        "rel", [".hidden", ".git/objects/ab", "photo.meta", "docs/.draft.md"]
    )
    def test_ignored_paths_do_not_trigger(self, handler, watch_dir, rel):
        handler.dispatch(FileCreatedEvent(str(watch_dir / rel)))
        handler.dispatch(FileModifiedEvent(str(watch_dir / rel)))

        handler.trigger.assert_not_called()

    def test_directory_create_and_modify_ignored(self, handler, watch_dir):
        handler.dispatch(DirCreatedEvent(str(watch_dir / "new")))
        handler.dispatch(DirModifiedEvent(str(watch_dir)))

        handler.trigger.assert_not_called()

    def test_directory_delete_triggers(self, handler, watch_dir):
        handler.dispatch(DirDeletedEvent(str(watch_dir / "gone")))

        handler.trigger.assert_called_once()

    def test_move_into_hidden_triggers(self, handler, watch_dir):
        handler.dispatch(
            FileMovedEvent(str(watch_dir / "a.txt"), str(watch_dir / ".trash" / "a.txt"))
        )

        handler.trigger.assert_called_once()

    def test_move_between_hidden_paths_ignored(self, handler, watch_dir):
        handler.dispatch(
            FileMovedEvent(str(watch_dir / ".tmp1"), str(watch_dir / ".tmp2"))
        )

        handler.trigger.assert_not_called()

    def test_path_outside_root_ignored(self, handler, tmp_path):
        handler.dispatch(FileCreatedEvent(str(tmp_path / "elsewhere.txt")))

        handler.trigger.assert_not_called()


class TestDirectoryWatcher:
    def test_schedules_recursive_observer(self, watch_dir):
        engine = SimpleNamespace(root=watch_dir, trigger=Mock())
        observer = MagicMock()
        watcher = DirectoryWatcher(engine, observer_factory=lambda: observer)

        watcher.start()
        watcher.start()

        observer.schedule.assert_called_once_with(
            watcher.handler, str(watch_dir), recursive=True
        )
        observer.start.assert_called_once()
        assert watcher.running

        watcher.stop()

        observer.stop.assert_called_once()
        observer.join.assert_called_once()
        assert not watcher.running

    def test_stop_without_start(self, watch_dir):
        engine = SimpleNamespace(root=watch_dir, trigger=Mock())
        DirectoryWatcher(engine, observer_factory=MagicMock).stop()

    def test_real_observer_sees_new_file(self, watch_dir):
        fired = threading.Event()
        engine = SimpleNamespace(root=watch_dir, trigger=fired.set)
        watcher = DirectoryWatcher(engine)

        watcher.start()
        try:
            (watch_dir / "fresh.txt").write_bytes(b"new")
            assert fired.wait(5)
        finally:
            watcher.stop()

"""Shared pytest fixtures for pin-mirror tests."""

from __future__ import annotations

from typing import Any

import pytest

from pin_mirror.config import Config
from pin_mirror.errors import RemoteError
from pin_mirror.sync.hasher import hash_bytes
from pin_mirror.sync.models import Group, RemoteRecord

_ENV_KEYS = (
    "PINATA_JWT",
    "WATCH_DIRECTORY",
    "PINATA_API_URL",
    "MANAGED_GROUPS",
    "SYNC_INTERVAL",
    "USECRON",
    "FILEPORT",
    "PINATA_PAGE_LIMIT",
    "PINATA_MAX_RETRIES",
    "PINATA_RETRY_DELAY",
    "PINATA_MAX_PARALLEL_REQUESTS",
    "PIN_MIRROR_CACHE_GROUPS",
    "PIN_MIRROR_SKIP_UNREADABLE",
    "PIN_MIRROR_DEBUG",
    "PIN_MIRROR_CONFIG",
    "LOG_LEVEL",
)


class FakePinataClient:
    """In-memory stand-in for PinataClient.

    Pins are keyed by CID (computed with the real hasher, so uploaded
    hashes match scanned ones). Every mutating call is recorded.
    """

    def __init__(self, groups: dict[str, str] | None = None) -> None:
        self.pins: dict[str, dict[str, Any]] = {}
        self.groups: dict[str, str] = dict(groups or {})

        self.uploads: list[tuple[str, str | None, dict]] = []
        self.unpinned: list[str] = []
        self.created_groups: list[str] = []
        self.list_calls: list[str | None] = []

        self.fail_uploads: set[str] = set()
        self.fail_unpins: set[str] = set()
        self.unacknowledged: set[str] = set()
        self.fail_group_create: set[str] = set()
        self.list_error: Exception | None = None
        self.groups_error: Exception | None = None

    # -- helpers -------------------------------------------------------

    def add_pin(
        self,
        path: str,
        content: bytes,
        group_id: str | None = None,
        owner: str | None = None,
    ) -> str:
        """Store a pin; *owner* is its ``localfolder``, ``None`` for ours."""
        cid = hash_bytes(content)
        self.pins[cid] = {"path": path, "group_id": group_id, "owner": owner}
        return cid

    # -- PinataClient surface ------------------------------------------

    def test_authentication(self) -> str:
        return "Congratulations! You are communicating with the Pinata API!"

    def list_pins(
        self, group_id: str | None = None, local_folder: str | None = None
    ) -> list[RemoteRecord]:
        self.list_calls.append(group_id)
        if self.list_error is not None:
            raise self.list_error
        return [
            RemoteRecord(
                relative_path=pin["path"],
                content_hash=cid,
                remote_id=cid,
                group_id=group_id,
            )
            for cid, pin in self.pins.items()
            if (group_id is None or pin["group_id"] == group_id)
            and pin["owner"] in (None, local_folder)
        ]

    def pin_file(
        self,
        relative_path: str,
        content: bytes,
        metadata: dict,
        group_id: str | None = None,
    ) -> str:
        if relative_path in self.fail_uploads:
            raise RemoteError("upload refused", status_code=500)
        self.uploads.append((relative_path, group_id, metadata))
        return self.add_pin(
            relative_path,
            content,
            group_id,
            owner=metadata["keyvalues"]["localfolder"],
        )

    def unpin(self, cid: str) -> bool:
        if cid in self.fail_unpins:
            raise RemoteError("unpin refused", status_code=500)
        if cid in self.unacknowledged:
            return False
        self.unpinned.append(cid)
        self.pins.pop(cid, None)
        return True

    def list_groups(self) -> list[Group]:
        if self.groups_error is not None:
            raise self.groups_error
        return [
            Group(name=name, remote_group_id=gid)
            for name, gid in self.groups.items()
        ]

    def create_group(self, name: str) -> str:
        if name in self.fail_group_create:
            raise RemoteError("group create refused", status_code=500)
        gid = f"grp-{name}"
        self.groups[name] = gid
        self.created_groups.append(name)
        return gid


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every pin-mirror environment variable for the test."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def watch_dir(tmp_path):
    """An empty directory to mirror."""
    root = tmp_path / "mirror"
    root.mkdir()
    return root


@pytest.fixture
def mock_config(watch_dir):
    """Create a Config instance for testing."""
    return Config(
        pinata_jwt="test-jwt",
        watch_directory=str(watch_dir),
        api_url="https://api.pinata.example",
        max_retries=3,
        retry_delay=0.0,
    )


@pytest.fixture
def fake_client():
    """An empty in-memory Pinata account."""
    return FakePinataClient()


@pytest.fixture
def make_tree(watch_dir):
    """Factory writing ``{relative_path: bytes}`` under the watch dir."""

    def _make(files: dict[str, bytes]):
        for rel, content in files.items():
            path = watch_dir / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        return watch_dir

    return _make


@pytest.fixture
def make_client():
    """Factory for fake clients with pre-existing groups."""

    def _make(groups: dict[str, str] | None = None) -> FakePinataClient:
        return FakePinataClient(groups=groups)

    return _make

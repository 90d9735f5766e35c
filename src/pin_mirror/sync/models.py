"""Pydantic models for the reconciliation engine.

Defines the core data contracts used across all sync modules:

- ``FileRecord``: One file of the local inventory.
- ``RemoteRecord``: One pin of the remote inventory.
- ``Group``: A remote group mapped from a local top-level folder.
- ``SyncAction``: Enum of possible per-item outcomes.
- ``SyncResult``: Outcome of one upload/delete.
- ``SyncReport``: Aggregate results for a full pass.
- ``EngineState``: Idle/syncing state of the engine.

All models are frozen (immutable).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class FileRecord(BaseModel):
    """A local file identified by its content.

    Attributes:
        relative_path: POSIX-style path relative to the watched root.
        content_hash: CIDv0 of the file bytes at scan time.
    """

    relative_path: str
    content_hash: str

    model_config = {"frozen": True}

    @property
    def top_level_folder(self) -> str | None:
        """First path segment, or ``None`` for files at the root."""
        head, sep, _ = self.relative_path.partition("/")
        return head if sep else None


class RemoteRecord(BaseModel):
    """A pinned item that this tool uploaded earlier.

    Attributes:
        relative_path: Local path recorded in the pin metadata at upload.
        content_hash: CID returned by the pinning service.
        remote_id: Handle used to unpin the item.
        group_id: Group the listing was scoped to, if any.
    """

    relative_path: str
    content_hash: str
    remote_id: str
    group_id: str | None = None

    model_config = {"frozen": True}


class Group(BaseModel):
    """A remote group named after a local top-level directory."""

    name: str
    remote_group_id: str | None = None

    model_config = {"frozen": True}


class SyncAction(str, Enum):
    """Possible outcomes for a single item in a pass."""

    UPLOAD = "upload"
    DELETE = "delete"
    SKIP = "skip"
    UNRESOLVED = "unresolved"


class EngineState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"


class SyncResult(BaseModel):
    """Result of processing one item.

    Attributes:
        relative_path: Local (or recorded) path of the item.
        content_hash: Content identifier of the item.
        action: What was (or, in a dry run, would be) done.
        success: Whether the operation succeeded.
        error: Error message if the operation failed.
        group: Group name the item was assigned to, if any.
    """

    relative_path: str
    content_hash: str
    action: SyncAction
    success: bool
    error: str | None = None
    group: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for one pass.

    Attributes:
        dry_run: Whether this was a dry-run (no changes applied).
        results: List of individual results.
        started_at: ISO 8601 timestamp when the pass started.
        completed_at: ISO 8601 timestamp when the pass ended.
        aborted: True if a pass-fatal error stopped the pass.
        error: Message of the pass-fatal error.
        local_count: Number of distinct local hashes in scope.
        remote_count: Number of distinct remote hashes in scope.
    """

    dry_run: bool = False
    results: list[SyncResult] = []
    started_at: str
    completed_at: str | None = None
    aborted: bool = False
    error: str | None = None
    local_count: int = 0
    remote_count: int = 0

    model_config = {"frozen": True}

    @property
    def uploaded(self) -> list[SyncResult]:
        """Successful (or planned) uploads."""
        return [
            r
            for r in self.results
            if r.action == SyncAction.UPLOAD and r.success
        ]

    @property
    def deleted(self) -> list[SyncResult]:
        """Successful (or planned) deletes."""
        return [
            r
            for r in self.results
            if r.action == SyncAction.DELETE and r.success
        ]

    @property
    def skipped(self) -> list[SyncResult]:
        """Results where action is SKIP."""
        return [r for r in self.results if r.action == SyncAction.SKIP]

    @property
    def unresolved(self) -> list[SyncResult]:
        """Uploads skipped because their group could not be resolved."""
        return [
            r for r in self.results if r.action == SyncAction.UNRESOLVED
        ]

    @property
    def errors(self) -> list[SyncResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    @property
    def ok(self) -> bool:
        return not self.aborted and not self.errors

    def summary(self) -> str:
        """Format a human-readable summary of the pass.

        Returns:
            Multi-line summary string with counts by action.
        """
        lines = [
            "Sync pass"
            + (" (dry run)" if self.dry_run else "")
            + (" ABORTED" if self.aborted else ""),
            f"  Local files:  {self.local_count}",
            f"  Remote pins:  {self.remote_count}",
            f"  Uploaded:     {len(self.uploaded)}",
            f"  Deleted:      {len(self.deleted)}",
            f"  Skipped:      {len(self.skipped)}",
            f"  Unresolved:   {len(self.unresolved)}",
            f"  Errors:       {len(self.errors)}",
        ]
        if self.error:
            lines.append(f"  Fatal error:  {self.error}")
        return "\n".join(lines)

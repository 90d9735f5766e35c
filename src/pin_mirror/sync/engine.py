"""Reconciliation engine that mirrors the watched root onto Pinata.

The ``ReconciliationEngine`` runs one *pass* at a time:

1. Enumerate remote groups (restricted to the allow-list, if any).
2. Enumerate local top-level folders as candidate group names.
3. Scan the local tree and page through every listing scope concurrently.
4. Key both inventories by content hash.
5. Upload every local hash missing remotely, into the group named after
   the file's top-level folder (created on demand).
6. Unpin every remote hash missing locally.
7. Build and return a ``SyncReport``.

Identity is the content hash only: identical bytes at two paths are one
pin, and a rename that keeps the bytes is not a change.

Error handling is per-item: one failed upload, delete or group creation
does not stop the pass. Scan and listing failures abort the whole pass;
nothing is persisted between passes, so the next trigger starts over.

Passes never overlap. A ``sync()`` call that arrives while a pass is
running is dropped, not queued; the watcher's next event re-triggers.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from pin_mirror.core.async_utils import (
    gather_limited,
    run_sync,
    run_sync_limited,
)
from pin_mirror.errors import GroupResolutionError
from pin_mirror.sync.groups import GroupResolver
from pin_mirror.sync.models import (
    EngineState,
    FileRecord,
    Group,
    RemoteRecord,
    SyncAction,
    SyncReport,
    SyncResult,
)
from pin_mirror.sync.scanner import LocalScanner, top_level_folders
from pin_mirror.sync.sidecar import build_metadata

if TYPE_CHECKING:
    from pin_mirror.config import Config
    from pin_mirror.core.client import PinataClient

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ReconciliationEngine:
    """Diff local files against remote pins and apply the difference.

    Args:
        client: PinataClient (or any object with the same methods).
        watch_directory: Root of the mirrored tree.
        managed_groups: Allow-list of group names. When non-empty only
            these groups are listed remotely and only files under these
            top-level folders are mirrored.
        scanner: Local inventory scanner.
        resolver: Group resolver; built from *client* when omitted.
        max_parallel_requests: Uploads/deletes in flight at once.
    """

    def __init__(
        self,
        client: PinataClient,
        watch_directory: Path,
        managed_groups: Iterable[str] = (),
        scanner: LocalScanner | None = None,
        resolver: GroupResolver | None = None,
        max_parallel_requests: int = 1,
    ) -> None:
        self.client = client
        self.root = Path(watch_directory)
        self.managed_groups = list(managed_groups)
        self.scanner = scanner or LocalScanner()
        self.groups = resolver or GroupResolver(client)
        self.max_parallel_requests = max(1, max_parallel_requests)

        self._guard = threading.Lock()
        self._state = EngineState.IDLE
        self.last_report: SyncReport | None = None

    @classmethod
    def from_config(
        cls, client: PinataClient, config: Config
    ) -> ReconciliationEngine:
        """Build an engine from runtime configuration."""
        return cls(
            client=client,
            watch_directory=Path(config.watch_directory),
            managed_groups=config.managed_groups,
            scanner=LocalScanner(skip_unreadable=config.skip_unreadable),
            resolver=GroupResolver(client, cache=config.cache_groups),
            max_parallel_requests=config.max_parallel_requests,
        )

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def local_folder(self) -> str:
        """Value of the ``localfolder`` keyvalue stamped on uploads."""
        return str(self.root)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def trigger(self) -> threading.Thread:
        """Start a pass in the background and return immediately.

        Suitable as a watcher or timer callback: the caller's thread is
        never blocked, and the pass is dropped if one is already running.
        """
        thread = threading.Thread(
            target=self.sync, name="pin-mirror-sync", daemon=True
        )
        thread.start()
        return thread

    def sync(self, dry_run: bool = False) -> SyncReport | None:
        """Run one pass unless another is in flight.

        Must not be called from a thread with a running event loop; async
        callers go through ``run_sync(engine.sync)``.

        Args:
            dry_run: If ``True``, compute actions but do not upload,
                delete or create anything.

        Returns:
            The pass report, or ``None`` if the call was dropped because a
            pass was already running.
        """
        if not self._guard.acquire(blocking=False):
            logger.debug("Sync already in progress, dropping request")
            return None

        self._state = EngineState.SYNCING
        started_at = _now()
        try:
            report = asyncio.run(self._run_pass(started_at, dry_run))
        except Exception as exc:
            logger.exception("Sync failed: %s", exc)
            report = SyncReport(
                dry_run=dry_run,
                started_at=started_at,
                completed_at=_now(),
                aborted=True,
                error=str(exc),
            )
        finally:
            self._state = EngineState.IDLE
            self._guard.release()

        self.last_report = report
        return report

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    async def _run_pass(self, started_at: str, dry_run: bool) -> SyncReport:
        logger.info("Starting sync%s...", " (dry run)" if dry_run else "")

        # Steps 1-2: groups
        await run_sync(self.groups.begin_pass)
        scopes = self.groups.scopes(self.managed_groups)

        # Step 3: inventories, concurrently
        local_records, remote_records = await asyncio.gather(
            run_sync(self.scanner.scan, self.root),
            run_sync(self._list_remote, scopes),
        )
        local_records = self._in_scope(local_records)
        folders = top_level_folders(local_records)
        new_folders = [f for f in folders if self.groups.lookup(f) is None]
        if new_folders:
            logger.info("Local folders without a remote group: %s", new_folders)

        # Step 4: hash-keyed inventories; first path in sorted order wins
        local_map: dict[str, FileRecord] = {}
        for record in local_records:
            local_map.setdefault(record.content_hash, record)
        remote_map: dict[str, RemoteRecord] = {}
        for remote in remote_records:
            remote_map.setdefault(remote.content_hash, remote)

        results: list[SyncResult] = []
        to_upload: list[FileRecord] = []
        for content_hash, record in local_map.items():
            if content_hash in remote_map:
                results.append(
                    SyncResult(
                        relative_path=record.relative_path,
                        content_hash=content_hash,
                        action=SyncAction.SKIP,
                        success=True,
                        group=record.top_level_folder,
                    )
                )
            else:
                to_upload.append(record)
        to_delete = [
            remote
            for content_hash, remote in remote_map.items()
            if content_hash not in local_map
        ]

        semaphore = asyncio.Semaphore(self.max_parallel_requests)

        # Step 5: uploads
        results.extend(
            await gather_limited(
                [self._upload(r, semaphore, dry_run) for r in to_upload]
            )
        )
        logger.info(
            "Skipped %d files",
            sum(1 for r in results if r.action == SyncAction.SKIP),
        )

        # Step 6: deletes
        results.extend(
            await gather_limited(
                [self._delete(r, semaphore, dry_run) for r in to_delete]
            )
        )

        report = SyncReport(
            dry_run=dry_run,
            results=results,
            started_at=started_at,
            completed_at=_now(),
            local_count=len(local_map),
            remote_count=len(remote_map),
        )
        logger.info(
            "Sync completed: %d uploaded, %d deleted, %d errors",
            len(report.uploaded),
            len(report.deleted),
            len(report.errors),
        )
        return report

    def _list_remote(self, scopes: list[Group]) -> list[RemoteRecord]:
        """Concatenate the paged listings of every scope."""
        records: list[RemoteRecord] = []
        for scope in scopes:
            records.extend(
                self.client.list_pins(
                    scope.remote_group_id, local_folder=self.local_folder
                )
            )
        return records

    def _in_scope(self, records: list[FileRecord]) -> list[FileRecord]:
        """Keep only files under allowed top-level folders, if restricted."""
        if not self.managed_groups:
            return records
        allowed = set(self.managed_groups)
        return [r for r in records if r.top_level_folder in allowed]

    # ------------------------------------------------------------------
    # Per-item operations
    # ------------------------------------------------------------------

    async def _upload(
        self,
        record: FileRecord,
        semaphore: asyncio.Semaphore,
        dry_run: bool,
    ) -> SyncResult:
        """Resolve the group and upload one file; never raises."""
        group_name = record.top_level_folder
        group_id: str | None = None

        if group_name is not None:
            if dry_run:
                group_id = self.groups.lookup(group_name)
            else:
                try:
                    group_id = await run_sync_limited(
                        semaphore, self.groups.resolve, group_name
                    )
                except GroupResolutionError as exc:
                    logger.warning(
                        "Skipping %s this pass: %s", record.relative_path, exc
                    )
                    return SyncResult(
                        relative_path=record.relative_path,
                        content_hash=record.content_hash,
                        action=SyncAction.UNRESOLVED,
                        success=False,
                        error=str(exc),
                        group=group_name,
                    )

        if dry_run:
            return SyncResult(
                relative_path=record.relative_path,
                content_hash=record.content_hash,
                action=SyncAction.UPLOAD,
                success=True,
                group=group_name,
            )

        try:
            await run_sync_limited(
                semaphore, self._upload_file, record, group_id
            )
        except Exception as exc:
            logger.error(
                "Upload failed for %s: %s", record.relative_path, exc
            )
            return SyncResult(
                relative_path=record.relative_path,
                content_hash=record.content_hash,
                action=SyncAction.UPLOAD,
                success=False,
                error=str(exc),
                group=group_name,
            )

        return SyncResult(
            relative_path=record.relative_path,
            content_hash=record.content_hash,
            action=SyncAction.UPLOAD,
            success=True,
            group=group_name,
        )

    def _upload_file(self, record: FileRecord, group_id: str | None) -> str:
        """Read the current bytes and pin them (runs in a worker thread)."""
        content = (self.root / record.relative_path).read_bytes()
        metadata = build_metadata(
            self.root, record.relative_path, self.local_folder
        )
        cid = self.client.pin_file(
            record.relative_path, content, metadata, group_id
        )
        if cid != record.content_hash:
            # file changed after the scan, or the service used other settings
            logger.warning(
                "Pinned %s as %s but scanned hash was %s",
                record.relative_path,
                cid,
                record.content_hash,
            )
        return cid

    async def _delete(
        self,
        remote: RemoteRecord,
        semaphore: asyncio.Semaphore,
        dry_run: bool,
    ) -> SyncResult:
        """Unpin one orphaned record; never raises."""
        if dry_run:
            return SyncResult(
                relative_path=remote.relative_path,
                content_hash=remote.content_hash,
                action=SyncAction.DELETE,
                success=True,
            )

        error: str | None = None
        try:
            acknowledged = await run_sync_limited(
                semaphore, self.client.unpin, remote.remote_id
            )
            if not acknowledged:
                error = "unpin was not acknowledged"
        except Exception as exc:
            error = str(exc)

        if error:
            logger.error(
                "Delete failed for %s (%s): %s",
                remote.relative_path,
                remote.remote_id,
                error,
            )
        return SyncResult(
            relative_path=remote.relative_path,
            content_hash=remote.content_hash,
            action=SyncAction.DELETE,
            success=error is None,
            error=error,
        )

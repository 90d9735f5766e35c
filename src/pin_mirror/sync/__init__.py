"""Hash-keyed reconciliation of a local tree with Pinata pins.

Architecture
------------
Local files and remote pins are both identified by their CIDv0. Each pass
rebuilds both inventories from scratch, uploads what is missing remotely
and unpins what no longer exists locally. No state survives a pass.

Modules:

- ``engine``   -- ``ReconciliationEngine``: single-flight pass runner.
- ``scanner``  -- ``LocalScanner``: iterative walk + hashing.
- ``hasher``   -- CIDv0 derivation (UnixFS/dag-pb/base58btc).
- ``groups``   -- ``GroupResolver``: folder name -> Pinata group id.
- ``sidecar``  -- pin metadata envelopes and ``.meta`` sidecars.
- ``models``   -- ``FileRecord``, ``RemoteRecord``, ``Group``,
  ``SyncAction``, ``SyncResult``, ``SyncReport``, ``EngineState``.
- ``reporter`` -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from pathlib import Path
    from pin_mirror.core.client import PinataClient
    from pin_mirror.sync import ReconciliationEngine, format_sync_report

    engine = ReconciliationEngine(
        client=PinataClient(config),
        watch_directory=Path("/srv/mirror"),
        managed_groups=["photos"],
    )

    preview = engine.sync(dry_run=True)
    print(format_dry_run_preview(preview))

    report = engine.sync()
    print(format_sync_report(report))
"""

from .engine import ReconciliationEngine
from .groups import GroupResolver
from .hasher import hash_bytes, hash_file
from .models import (
    EngineState,
    FileRecord,
    Group,
    RemoteRecord,
    SyncAction,
    SyncReport,
    SyncResult,
)
from .reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from .scanner import LocalScanner

__all__ = [
    "EngineState",
    "FileRecord",
    "Group",
    "GroupResolver",
    "LocalScanner",
    "ReconciliationEngine",
    "RemoteRecord",
    "SyncAction",
    "SyncReport",
    "SyncResult",
    "format_dry_run_preview",
    "format_sync_report",
    "hash_bytes",
    "hash_file",
    "report_to_json",
]

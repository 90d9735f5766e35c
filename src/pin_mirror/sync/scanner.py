"""Local inventory scanner.

Walks the watched root with an explicit stack (no recursion) and hashes
every regular file into a ``FileRecord``.

Exclusions:

* any file or directory whose name starts with ``.``;
* sidecar metadata files (``*.meta``), which describe a paired payload
  and are never pinned themselves.

Symlinked directories are not descended. Relative paths always use ``/``
so they compare directly with the paths recorded in pin metadata.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Iterable

from pin_mirror.errors import ScanError
from pin_mirror.sync.hasher import hash_file
from pin_mirror.sync.models import FileRecord

logger = logging.getLogger(__name__)

HIDDEN_PREFIX = "."
SIDECAR_SUFFIX = ".meta"


def is_excluded_name(name: str) -> bool:
    """Return ``True`` for hidden entries."""
    return name.startswith(HIDDEN_PREFIX)


def is_sidecar(name: str) -> bool:
    return name.endswith(SIDECAR_SUFFIX)


def is_ignored_path(relative_path: str) -> bool:
    """Return ``True`` if any segment is hidden or the file is a sidecar."""
    parts = [p for p in relative_path.replace("\\", "/").split("/") if p]
    if any(is_excluded_name(p) for p in parts):
        return True
    return bool(parts) and is_sidecar(parts[-1])


class LocalScanner:
    """Build the local inventory of a directory tree.

    Args:
        skip_unreadable: When ``False`` (default) the first file that
            cannot be read aborts the scan with ``ScanError``. When
            ``True`` the file is logged and left out of the inventory.
        hasher: Function computing the content hash of a file path.
    """

    def __init__(
        self,
        skip_unreadable: bool = False,
        hasher: Callable[[Path], str] = hash_file,
    ) -> None:
        self.skip_unreadable = skip_unreadable
        self._hasher = hasher

    def iter_files(self, root: Path) -> list[str]:
        """Return the sorted relative paths of all inventoried files.

        Raises:
            ScanError: If *root* or one of its directories cannot be listed.
        """
        if not root.is_dir():
            raise ScanError("Watch directory is missing", path=str(root))

        found: list[str] = []
        stack: list[tuple[Path, str]] = [(root, "")]
        while stack:
            directory, prefix = stack.pop()
            try:
                with os.scandir(directory) as entries:
                    for entry in entries:
                        if is_excluded_name(entry.name):
                            continue
                        rel = f"{prefix}{entry.name}"
                        if entry.is_dir(follow_symlinks=False):
                            stack.append((Path(entry.path), f"{rel}/"))
                        elif entry.is_file() and not is_sidecar(entry.name):
                            found.append(rel)
            except OSError as exc:
                if self.skip_unreadable and directory != root:
                    logger.warning(
                        "Skipping unreadable directory %s: %s", directory, exc
                    )
                    continue
                raise ScanError(
                    f"Cannot list directory: {exc}", path=str(directory)
                ) from exc
        return sorted(found)

    def scan(self, root: Path) -> list[FileRecord]:
        """Hash every inventoried file under *root*.

        Returns:
            Records sorted by relative path.

        Raises:
            ScanError: On the first unreadable file unless
                ``skip_unreadable`` is set.
        """
        records: list[FileRecord] = []
        for rel in self.iter_files(root):
            try:
                content_hash = self._hasher(root / rel)
            except OSError as exc:
                if self.skip_unreadable:
                    logger.warning("Skipping unreadable file %s: %s", rel, exc)
                    continue
                raise ScanError(f"Cannot read file: {exc}", path=rel) from exc
            records.append(
                FileRecord(relative_path=rel, content_hash=content_hash)
            )
        logger.debug("Scanned %d files under %s", len(records), root)
        return records


def top_level_folders(records: Iterable[FileRecord]) -> list[str]:
    """Distinct first path segments of records that live in a folder."""
    return sorted(
        {r.top_level_folder for r in records if r.top_level_folder}
    )

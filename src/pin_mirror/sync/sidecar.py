"""Pin metadata envelopes and ``.meta`` sidecar files.

Every upload carries a ``pinataMetadata`` envelope::

    {"name": "<file name>",
     "keyvalues": {"localfolder": "<watch dir>",
                   "localfile": "<relative path>",
                   "name": "<file name>"}}

``localfolder`` marks the pin as managed by pin-mirror and ``localfile``
is how the remote inventory recovers the local path.

A binary payload ``x.bin`` may have a sibling ``x.meta`` JSON file that
overrides the pin name and adds keyvalues. The managed keyvalues always
win over sidecar ones.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from pin_mirror.errors import SidecarError
from pin_mirror.sync.scanner import SIDECAR_SUFFIX

logger = logging.getLogger(__name__)

PAYLOAD_SUFFIX = ".bin"


class SidecarMetadata(BaseModel):
    """Contents of a ``.meta`` sidecar file."""

    name: str | None = None
    keyvalues: dict[str, Any] = {}

    model_config = ConfigDict(extra="ignore", frozen=True)


def sidecar_path_for(relative_path: str) -> str | None:
    """Relative path of the sidecar for *relative_path*, if it can have one."""
    if not relative_path.endswith(PAYLOAD_SUFFIX):
        return None
    return relative_path[: -len(PAYLOAD_SUFFIX)] + SIDECAR_SUFFIX


def load_sidecar(root: Path, relative_path: str) -> SidecarMetadata | None:
    """Read the sidecar paired with *relative_path*.

    Returns:
        Parsed sidecar, or ``None`` when the file has no sidecar.

    Raises:
        SidecarError: If the sidecar exists but is not valid JSON or does
            not have the expected shape.
    """
    meta_rel = sidecar_path_for(relative_path)
    if meta_rel is None:
        return None
    meta_path = root / meta_rel
    if not meta_path.is_file():
        return None

    try:
        raw = json.loads(meta_path.read_text(encoding="utf-8"))
        return SidecarMetadata.model_validate(raw)
    except (OSError, ValueError, ValidationError) as exc:
        raise SidecarError(
            f"Invalid sidecar metadata: {exc}", path=meta_rel
        ) from exc


def build_metadata(
    root: Path, relative_path: str, local_folder: str
) -> dict[str, Any]:
    """Assemble the ``pinataMetadata`` envelope for one upload."""
    file_name = relative_path.rsplit("/", 1)[-1]
    managed = {
        "localfolder": local_folder,
        "localfile": relative_path,
        "name": file_name,
    }

    sidecar = load_sidecar(root, relative_path)
    if sidecar is None:
        return {"name": file_name, "keyvalues": managed}

    logger.debug("Merging sidecar metadata for %s", relative_path)
    return {
        "name": sidecar.name or file_name,
        "keyvalues": {**sidecar.keyvalues, **managed},
    }

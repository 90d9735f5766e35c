"""Map local top-level folders to remote Pinata groups.

A file ``photos/2024/a.jpg`` belongs to the group ``photos``; files at the
root belong to no group. Groups are looked up by name and created on
first use.

Known groups are re-listed at the start of every pass. With ``cache=True``
the listing is kept for the life of the process and refreshed at the start
of the pass following a failed group creation.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Iterable

from pin_mirror.errors import GroupResolutionError
from pin_mirror.sync.models import Group

if TYPE_CHECKING:
    from pin_mirror.core.client import PinataClient

logger = logging.getLogger(__name__)


class GroupResolver:
    """Resolve group names to remote ids, creating groups on demand.

    Args:
        client: Pinata client providing ``list_groups`` and
            ``create_group``.
        cache: Keep known groups across passes.
    """

    def __init__(self, client: PinataClient, cache: bool = False) -> None:
        self.client = client
        self.cache = cache
        self._known: dict[str, str] = {}
        self._loaded = False
        self._failed: dict[str, str] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Pass lifecycle
    # ------------------------------------------------------------------

    def begin_pass(self) -> list[Group]:
        """Prepare for a new pass and return the known remote groups.

        Lists remote groups unless a populated cache is in use. A listing
        failure propagates and aborts the pass.
        """
        with self._lock:
            self._failed.clear()
            if not (self.cache and self._loaded):
                groups = self.client.list_groups()
                self._known = {
                    g.name: g.remote_group_id
                    for g in groups
                    if g.remote_group_id
                }
                self._loaded = True
                logger.debug("Loaded %d remote groups", len(self._known))
            return [
                Group(name=name, remote_group_id=gid)
                for name, gid in sorted(self._known.items())
            ]

    def invalidate(self) -> None:
        """Make the next ``begin_pass`` list remote groups again.

        Groups already known stay valid for the pass in flight.
        """
        self._loaded = False

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def lookup(self, name: str) -> str | None:
        """Return the id of an existing group, without creating it."""
        with self._lock:
            return self._known.get(name)

    def scopes(self, managed_groups: Iterable[str]) -> list[Group]:
        """Listing scopes for a pass.

        With an allow-list, one scope per allowed group that already
        exists remotely (groups that do not exist yet hold no pins). Without
        one, a single implicit root scope with no group id, which lists
        every pin of the account.
        """
        allowed = list(managed_groups)
        if not allowed:
            return [Group(name="root", remote_group_id=None)]
        with self._lock:
            return [
                Group(name=name, remote_group_id=self._known[name])
                for name in allowed
                if name in self._known
            ]

    def resolve(self, name: str) -> str:
        """Return the remote id for *name*, creating the group if absent.

        A failed creation is remembered for the rest of the pass so sibling
        files do not hammer the API, and marks the cache stale for the next
        pass.

        Raises:
            GroupResolutionError: If the group cannot be created.
        """
        with self._lock:
            if name in self._known:
                return self._known[name]
            if name in self._failed:
                raise GroupResolutionError(
                    f"Group '{name}' unresolved this pass: {self._failed[name]}",
                    group_name=name,
                )
            try:
                group_id = self.client.create_group(name)
            except Exception as exc:
                logger.error("Failed to create group '%s': %s", name, exc)
                self._failed[name] = str(exc)
                self.invalidate()
                raise GroupResolutionError(
                    f"Cannot create group '{name}': {exc}", group_name=name
                ) from exc
            self._known[name] = group_id
            logger.info("Created group '%s' (%s)", name, group_id)
            return group_id

"""Resolve a nested remote folder path, creating whatever is missing.

Resolution walks the path one segment at a time. Each segment is looked up
by exact name under the previously resolved folder (under any parent for the
first segment unless a starting parent is given). The first match is reused;
otherwise the folder is created. The handle of the last segment is returned.

Resolving is not a pure lookup: it may create remote folders. Two processes
resolving the same missing path at the same moment can both create it; the
service does not enforce unique names, so later runs then see duplicates.
Duplicates are resolved to the earliest created folder.
"""
from __future__ import annotations

from datetime import datetime, timezone

import structlog

from apk_release.schemas import FolderHandle, FolderPath, RemoteEntry
from apk_release.storage.base import StorageBackend

log = structlog.get_logger(__name__)

_LATEST = datetime.max.replace(tzinfo=timezone.utc)


def pick_folder(matches: list[RemoteEntry]) -> RemoteEntry:
    """Earliest created match; entries without a creation time keep backend order, last."""
    return min(matches, key=lambda e: e.created_time or _LATEST)


async def resolve_segment(
    storage: StorageBackend, name: str, parent: FolderHandle | None
) -> FolderHandle:
    matches = await storage.find_folders(name, parent)
    if matches:
        chosen = pick_folder(matches)
        if len(matches) > 1:
            log.warning(
                "duplicate_folders",
                name=name,
                parent=parent,
                n=len(matches),
                chosen=chosen.id,
            )
        return FolderHandle(chosen.id)
    return await storage.create_folder(name, parent)


async def resolve_or_create(
    storage: StorageBackend, path: FolderPath, parent: FolderHandle | None = None
) -> FolderHandle:
    """Return the handle of the leaf of `path`, creating missing folders on the way."""
    for name in path.segments:
        parent = await resolve_segment(storage, name, parent)
    log.info("folder_path_resolved", path=str(path), folder_id=parent)
    return parent


class FolderResolver:
    """Path resolver that remembers handles for the lifetime of the process."""

    def __init__(self, storage: StorageBackend, root: FolderHandle | None = None):
        self.storage = storage
        self.root = root
        self._known: dict[tuple[str, ...], FolderHandle] = {}

    async def resolve(self, path: FolderPath) -> FolderHandle:
        parent = self.root
        for depth in range(1, len(path.segments) + 1):
            prefix = path.segments[:depth]
            known = self._known.get(prefix)
            if known is None:
                known = await resolve_segment(self.storage, prefix[-1], parent)
                self._known[prefix] = known
            parent = known
        log.info("folder_path_resolved", path=str(path), folder_id=parent)
        return parent

    def forget(self) -> None:
        self._known.clear()

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from pathlib import Path

from apk_release.schemas import FOLDER_MIME_TYPE, FolderHandle, RemoteEntry
from apk_release.storage.base import StorageBackend

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class InMemoryStorage(StorageBackend):
    """Storage backend that keeps folders and files in process memory."""

    def __init__(self):
        self.entries: dict[str, RemoteEntry] = {}
        self.contents: dict[str, bytes] = {}
        self.public: set[str] = set()
        self.calls: list[tuple[str, str, str | None]] = []
        self._ids = itertools.count(1)

    def _next_entry(self, prefix: str, name: str, parent: str | None, mime_type: str) -> RemoteEntry:
        n = next(self._ids)
        entry = RemoteEntry(
            id=f"{prefix}{n}",
            name=name,
            mime_type=mime_type,
            parents=[parent] if parent else [],
            created_time=_EPOCH + timedelta(seconds=n),
        )
        self.entries[entry.id] = entry
        return entry

    def add_folder(self, name: str, parent: str | None = None) -> FolderHandle:
        """Seed an existing folder without recording a call."""
        return FolderHandle(self._next_entry("folder-", name, parent, FOLDER_MIME_TYPE).id)

    @property
    def folders(self) -> list[RemoteEntry]:
        return [e for e in self.entries.values() if e.mime_type == FOLDER_MIME_TYPE]

    @property
    def created_folders(self) -> list[str]:
        return [name for op, name, _ in self.calls if op == "create_folder"]

    async def find_folders(self, name: str, parent: FolderHandle | None = None) -> list[RemoteEntry]:
        self.calls.append(("find_folders", name, parent))
        matches = [
            e
            for e in self.folders
            if e.name == name and (parent is None or parent in e.parents)
        ]
        return sorted(matches, key=lambda e: e.created_time)

    async def create_folder(self, name: str, parent: FolderHandle | None = None) -> FolderHandle:
        self.calls.append(("create_folder", name, parent))
        return self.add_folder(name, parent)

    async def upload_file(
        self, path: Path, name: str, parent: FolderHandle, mime_type: str
    ) -> RemoteEntry:
        self.calls.append(("upload_file", name, parent))
        entry = self._next_entry("file-", name, parent, mime_type)
        self.contents[entry.id] = path.read_bytes()
        return entry

    async def share_publicly(self, file_id: str) -> None:
        self.calls.append(("share_publicly", file_id, None))
        self.public.add(file_id)

    def share_link(self, file_id: str) -> str:
        return f"memory://files/{file_id}"

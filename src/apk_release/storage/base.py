from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from apk_release.schemas import FolderHandle, RemoteEntry


class StorageBackend(ABC):
    @abstractmethod
    async def find_folders(self, name: str, parent: FolderHandle | None = None) -> list[RemoteEntry]:
        """Folders named exactly `name` under `parent` (any parent when None), oldest first."""
        raise NotImplementedError

    @abstractmethod
    async def create_folder(self, name: str, parent: FolderHandle | None = None) -> FolderHandle:
        raise NotImplementedError

    @abstractmethod
    async def upload_file(
        self, path: Path, name: str, parent: FolderHandle, mime_type: str
    ) -> RemoteEntry:
        raise NotImplementedError

    @abstractmethod
    async def share_publicly(self, file_id: str) -> None:
        """Grant read access to anyone holding the link."""
        raise NotImplementedError

    @abstractmethod
    def share_link(self, file_id: str) -> str:
        raise NotImplementedError

    async def close(self) -> None:
        return None

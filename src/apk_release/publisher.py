from __future__ import annotations

from datetime import datetime
from pathlib import Path

import structlog

from apk_release.errors import PublishError
from apk_release.schemas import APK_MIME_TYPE, FolderHandle, PublishedArtifact
from apk_release.storage.base import StorageBackend

log = structlog.get_logger(__name__)


def artifact_file_name(app_name: str, when: datetime) -> str:
    """Upload name for a build, e.g. ``MyApp-03:15 PM.apk``."""
    return f"{app_name}-{when.strftime('%I:%M %p')}.apk"


class ArtifactPublisher:
    """Uploads a build artifact and makes it downloadable by link."""

    def __init__(self, storage: StorageBackend, mime_type: str = APK_MIME_TYPE):
        self.storage = storage
        self.mime_type = mime_type

    async def publish(self, local_path: Path, folder: FolderHandle, file_name: str) -> PublishedArtifact:
        if not local_path.is_file():
            raise PublishError(f"artifact not found: {local_path}")

        entry = await self.storage.upload_file(local_path, file_name, folder, self.mime_type)
        await self.storage.share_publicly(entry.id)

        artifact = PublishedArtifact(
            file_id=entry.id,
            name=file_name,
            size=local_path.stat().st_size,
            link=self.storage.share_link(entry.id),
        )
        log.info("artifact_published", file_id=artifact.file_id, link=artifact.link)
        return artifact

"""Build -> resolve folder -> publish -> notify."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable

import structlog
from pydantic import BaseModel

from apk_release.build import run_build
from apk_release.config import Settings
from apk_release.errors import NotifyError
from apk_release.notifications.slack import SlackNotifier, format_release_message
from apk_release.publisher import ArtifactPublisher, artifact_file_name
from apk_release.schemas import BuildOutput, FolderHandle, FolderPath, ReleaseResult
from apk_release.storage.base import StorageBackend
from apk_release.storage.resolver import FolderResolver

log = structlog.get_logger(__name__)

Builder = Callable[[list[str]], Awaitable[BuildOutput]]


class ReleaseConfig(BaseModel):
    app_name: str
    root_folder: str = "Apk"
    root_parent_id: str | None = None
    artifact_path: Path
    build_command: list[str]
    skip_build: bool = False
    message_signature: str | None = None

    @classmethod
    def from_settings(cls, s: Settings, **overrides) -> ReleaseConfig:
        values = {
            "app_name": s.app_name,
            "root_folder": s.root_folder,
            "root_parent_id": s.root_parent_id,
            "artifact_path": Path(s.artifact_path),
            "build_command": s.build_command,
            "message_signature": s.message_signature,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class ReleasePipeline:
    """Runs one release, stopping at the first failing step.

    A failed notification is recorded on the result but never raised: by then
    the artifact is already published.
    """

    def __init__(
        self,
        config: ReleaseConfig,
        storage: StorageBackend,
        notifier: SlackNotifier | None,
        builder: Builder | None = None,
        clock: Callable[[], datetime] = datetime.now,
        on_build: Callable[[BuildOutput], None] | None = None,
    ):
        self.config = config
        self.storage = storage
        self.notifier = notifier
        self.builder = builder or run_build
        self.clock = clock
        self.on_build = on_build
        self.resolver = FolderResolver(
            storage, FolderHandle(config.root_parent_id) if config.root_parent_id else None
        )
        self.publisher = ArtifactPublisher(storage)

    async def run(self) -> ReleaseResult:
        build = None
        if not self.config.skip_build:
            log.info("pipeline_step", step="build")
            build = await self.builder(self.config.build_command)
            if self.on_build is not None:
                self.on_build(build)

        now = self.clock()
        path = FolderPath.for_release(self.config.root_folder, self.config.app_name, now.date())
        log.info("pipeline_step", step="resolve", path=str(path))
        folder = await self.resolver.resolve(path)

        log.info("pipeline_step", step="publish")
        artifact = await self.publisher.publish(
            self.config.artifact_path, folder, artifact_file_name(self.config.app_name, now)
        )
        result = ReleaseResult(build=build, folder=folder, artifact=artifact)

        if self.notifier is None:
            log.info("pipeline_notify_skipped", reason="no_webhook")
            return result

        log.info("pipeline_step", step="notify")
        text = format_release_message(
            self.config.app_name, artifact.link, self.clock(), self.config.message_signature
        )
        try:
            await self.notifier.send(text)
            result.notified = True
        except NotifyError as e:
            log.error("pipeline_notify_failed", error=str(e))
            result.notify_error = str(e)
        return result

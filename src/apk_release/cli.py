from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from apk_release.auth.credentials import CredentialStore
from apk_release.config import Settings, settings
from apk_release.errors import BuildFailure, ReleaseError
from apk_release.logging import configure_logging
from apk_release.notifications.slack import SlackNotifier
from apk_release.pipeline import ReleaseConfig, ReleasePipeline
from apk_release.schemas import ReleaseResult
from apk_release.storage.base import StorageBackend

log = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_BUILD_FAILED = 1
EXIT_REMOTE_FAILED = 2


def make_storage(s: Settings, mock: bool) -> StorageBackend:
    if mock:
        from apk_release.storage.mock import InMemoryStorage

        return InMemoryStorage()

    from apk_release.storage.drive import DriveStorage

    store = CredentialStore(s.credentials_path, s.tokens_path)
    return DriveStorage(store=store, timeout=s.http_timeout, max_retries=s.max_retries)


async def release(config: ReleaseConfig, storage: StorageBackend, webhook_url: str | None) -> ReleaseResult:
    notifier = SlackNotifier(webhook_url) if webhook_url else None
    try:
        pipeline = ReleasePipeline(config, storage, notifier, on_build=lambda _: print("APK built successfully."))
        return await pipeline.run()
    finally:
        await storage.close()
        if notifier is not None:
            await notifier.close()


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Build the APK, upload it to Drive and announce it on Slack.")
    ap.add_argument("--app-name", help="App folder name and artifact prefix")
    ap.add_argument("--artifact", type=Path, help="Path of the built APK")
    ap.add_argument("--skip-build", action="store_true", help="Publish an existing artifact")
    ap.add_argument("--mock", action="store_true", help="Use in-memory storage instead of Drive")
    args = ap.parse_args(argv)

    configure_logging(settings.log_level)
    config = ReleaseConfig.from_settings(
        settings,
        app_name=args.app_name,
        artifact_path=args.artifact,
        skip_build=args.skip_build or None,
    )
    mock = args.mock or settings.mock_mode
    if mock and settings.slack_webhook_url:
        log.info("slack_notify_skipped", reason="mock_mode")
    webhook_url = None if mock else settings.slack_webhook_url

    try:
        storage = make_storage(settings, mock)
        result = asyncio.run(release(config, storage, webhook_url))
    except BuildFailure as e:
        print(f"Failed to build APK: {e.stderr}")
        return EXIT_BUILD_FAILED
    except ReleaseError as e:
        print(f"Release failed: {e}")
        return EXIT_REMOTE_FAILED

    print(f"File uploaded. File ID: {result.artifact.file_id}")
    print(f"Download link: {result.artifact.link}")
    if result.notified:
        print("Slack message sent successfully.")
    elif result.notify_error:
        print(f"Failed to send Slack message: {result.notify_error}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

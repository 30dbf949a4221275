"""Slack webhook notifications for new releases."""
from __future__ import annotations

from datetime import datetime

import httpx
import structlog

from apk_release.errors import NotifyError

log = structlog.get_logger(__name__)


def format_release_message(
    app_name: str, link: str, released_at: datetime, signature: str | None = None
) -> str:
    """Announcement text for a freshly published build."""
    stamp = released_at.strftime("%a %d %b %I:%M %p %Y")
    message = f"""
*New APK Release: {app_name}*

A new version of the APK has been built and uploaded as of *{stamp}*.

<{link}|Download New APK>

Please test it and report any issues.
"""
    if signature:
        message += f"\n{signature}\n"
    return message


class SlackNotifier:
    """Posts messages to a Slack incoming webhook."""

    def __init__(self, webhook_url: str, client: httpx.AsyncClient | None = None, timeout: float = 10.0):
        self.webhook_url = webhook_url
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, text: str) -> None:
        try:
            response = await self.client.post(self.webhook_url, json={"text": text})
        except httpx.HTTPError as e:
            log.warning("slack_notify_failed", error=str(e))
            raise NotifyError(f"Slack webhook unreachable: {e}") from e

        if response.status_code != 200:
            log.warning("slack_notify_failed", status_code=response.status_code, body=response.text)
            raise NotifyError(
                f"Slack webhook returned {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        log.info("slack_notify_sent")

    async def close(self) -> None:
        await self.client.aclose()

import json
from datetime import datetime

import httpx
import pytest

from apk_release.errors import NotifyError
from apk_release.notifications.slack import SlackNotifier, format_release_message

WEBHOOK = "https://hooks.slack.test/services/T000/B000/XXX"


def make_notifier(status: int, sent: list) -> SlackNotifier:
    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(status, text="ok" if status == 200 else "invalid_payload")

    return SlackNotifier(WEBHOOK, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_release_message_links_download_and_stamps_time():
    text = format_release_message(
        "MyAppName",
        "https://drive.google.com/file/d/abc/view?usp=sharing",
        datetime(2024, 5, 1, 15, 7),
    )
    assert "<https://drive.google.com/file/d/abc/view?usp=sharing|Download New APK>" in text
    assert "*Wed 01 May 03:07 PM 2024*" in text
    assert "MyAppName" in text


def test_release_message_appends_signature():
    text = format_release_message("App", "https://x", datetime(2024, 5, 1), signature="Release bot")
    assert text.rstrip().endswith("Release bot")


@pytest.mark.asyncio
async def test_send_posts_text_payload():
    sent = []
    await make_notifier(200, sent).send("hello")

    assert len(sent) == 1
    assert str(sent[0].url) == WEBHOOK
    assert json.loads(sent[0].content) == {"text": "hello"}


@pytest.mark.asyncio
async def test_non_200_raises_notify_error_with_body():
    sent = []
    with pytest.raises(NotifyError) as exc:
        await make_notifier(500, sent).send("hello")

    assert exc.value.status_code == 500
    assert exc.value.body == "invalid_payload"


@pytest.mark.asyncio
async def test_unreachable_webhook_raises_notify_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    notifier = SlackNotifier(WEBHOOK, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(NotifyError):
        await notifier.send("hello")

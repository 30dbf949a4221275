from datetime import datetime, timedelta, timezone

import pytest
from google.auth.exceptions import TransportError
from google.oauth2.credentials import Credentials

from apk_release import cli
from apk_release.auth.credentials import DEFAULT_SCOPES, save_tokens
from apk_release.config import Settings
from apk_release.errors import BuildFailure, RemoteQueryError
from apk_release.notifications.slack import SlackNotifier
from apk_release.schemas import BuildOutput


@pytest.fixture
def offline_settings(monkeypatch, tmp_path):
    apk = tmp_path / "app-release.apk"
    apk.write_bytes(b"apk")
    s = Settings(artifact_path=str(apk), slack_webhook_url=None, _env_file=None)
    monkeypatch.setattr(cli, "settings", s)
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)
    return s


def test_mock_release_without_build(offline_settings, capsys):
    code = cli.main(["--mock", "--skip-build", "--app-name", "Demo"])

    out = capsys.readouterr().out
    assert code == cli.EXIT_OK
    assert "File uploaded. File ID: file-" in out
    assert "memory://files/" in out
    assert "APK built successfully." not in out


def test_build_failure_exit_code(offline_settings, monkeypatch, capsys):
    async def broken(command):
        raise BuildFailure(2, "flutter: command failed")

    monkeypatch.setattr("apk_release.pipeline.run_build", broken)

    code = cli.main(["--mock"])

    assert code == cli.EXIT_BUILD_FAILED
    assert "Failed to build APK: flutter: command failed" in capsys.readouterr().out


def test_remote_failure_exit_code(offline_settings, monkeypatch, capsys):
    async def failing_find(self, name, parent=None):
        raise RemoteQueryError("network down")

    monkeypatch.setattr("apk_release.storage.mock.InMemoryStorage.find_folders", failing_find)

    code = cli.main(["--mock", "--skip-build"])

    assert code == cli.EXIT_REMOTE_FAILED
    assert "network down" in capsys.readouterr().out


def test_mock_release_never_posts_to_slack(offline_settings, monkeypatch, capsys):
    sent = []

    async def record(self, text):
        sent.append((self.webhook_url, text))

    monkeypatch.setattr(SlackNotifier, "send", record)
    offline_settings.slack_webhook_url = "https://hooks.slack.test/services/TEAM"

    code = cli.main(["--mock", "--skip-build"])

    assert code == cli.EXIT_OK
    assert sent == []
    assert "Slack message sent" not in capsys.readouterr().out


def test_build_success_is_reported_before_upload(offline_settings, monkeypatch, capsys):
    async def build(command):
        return BuildOutput(command=command)

    monkeypatch.setattr("apk_release.pipeline.run_build", build)

    code = cli.main(["--mock"])

    out = capsys.readouterr().out
    assert code == cli.EXIT_OK
    assert out.index("APK built successfully.") < out.index("File uploaded.")


def test_network_failure_during_token_refresh_exit_code(offline_settings, monkeypatch, tmp_path, capsys):
    tokens = tmp_path / "tokens.json"
    save_tokens(
        Credentials(
            token="old",
            refresh_token="rtok",
            client_id="cid",
            client_secret="secret",
            token_uri="https://oauth2.googleapis.com/token",
            scopes=DEFAULT_SCOPES,
            expiry=datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(hours=1),
        ),
        tokens,
    )
    offline_settings.tokens_path = str(tokens)
    offline_settings.credentials_path = str(tmp_path / "credentials.json")

    def offline_refresh(self, request):
        raise TransportError("network unreachable")

    monkeypatch.setattr(Credentials, "refresh", offline_refresh)

    code = cli.main(["--skip-build"])

    assert code == cli.EXIT_REMOTE_FAILED
    assert "network unreachable" in capsys.readouterr().out

"""OAuth credential bootstrap for the Drive API.

Client secrets come from the JSON file downloaded from the Google Cloud
console. Tokens obtained from the consent flow are kept in a separate file
so later runs can reuse and refresh them without asking again. Neither file
belongs in version control.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import structlog
from google.auth.exceptions import GoogleAuthError, RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from apk_release.errors import CredentialsError

log = structlog.get_logger(__name__)

DRIVE_FILE_SCOPE = "https://www.googleapis.com/auth/drive.file"
DEFAULT_SCOPES = [DRIVE_FILE_SCOPE]
LOOPBACK_REDIRECT_URI = "http://localhost"

# Receives the consent URL, returns the redirect URL the browser landed on (or the bare code).
AuthorizationPrompt = Callable[[str], str]


def load_client_config(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    try:
        config = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise CredentialsError(f"OAuth client file not found: {p}") from e
    except json.JSONDecodeError as e:
        raise CredentialsError(f"OAuth client file is not valid JSON: {p}") from e

    if not any(key in config for key in ("installed", "web")):
        raise CredentialsError(f"OAuth client file has no 'installed' or 'web' section: {p}")
    return config


def load_tokens(path: str | Path, scopes: list[str] | None = None) -> Credentials | None:
    """Previously saved tokens, or None when there are none usable."""
    p = Path(path)
    if not p.exists():
        return None
    try:
        return Credentials.from_authorized_user_file(str(p), scopes or DEFAULT_SCOPES)
    except (ValueError, OSError) as e:
        log.warning("tokens_unreadable", path=str(p), error=str(e))
        return None


def save_tokens(credentials: Credentials, path: str | Path) -> None:
    Path(path).write_text(credentials.to_json(), encoding="utf-8")
    log.info("tokens_saved", path=str(path))


def console_prompt(url: str) -> str:
    print("Please go to the following URL and grant access:")
    print(f"  => {url}")
    return input("Paste the URL you were redirected to: ").strip()


class CredentialStore:
    """Loads, refreshes and, when needed, obtains Drive credentials."""

    def __init__(
        self,
        client_config_path: str | Path,
        tokens_path: str | Path,
        prompt: AuthorizationPrompt = console_prompt,
        scopes: list[str] | None = None,
    ):
        self.client_config_path = Path(client_config_path)
        self.tokens_path = Path(tokens_path)
        self.prompt = prompt
        self.scopes = scopes or DEFAULT_SCOPES

    def get_credentials(self) -> Credentials:
        credentials = load_tokens(self.tokens_path, self.scopes)

        if credentials is not None and credentials.valid:
            log.info("tokens_reused", path=str(self.tokens_path))
            return credentials

        if credentials is not None and credentials.refresh_token:
            try:
                return self.refresh(credentials)
            except RefreshError as e:
                log.warning("token_refresh_failed", error=str(e))

        credentials = self.authorize()
        save_tokens(credentials, self.tokens_path)
        return credentials

    def refresh(self, credentials: Credentials) -> Credentials:
        """Refresh with the refresh token and persist the result.

        A rejected grant is raised as RefreshError so callers can fall back to
        consent; any other auth failure (e.g. no network) is a CredentialsError.
        """
        try:
            credentials.refresh(Request())
        except RefreshError:
            raise
        except GoogleAuthError as e:
            log.error("token_refresh_failed", error=str(e))
            raise CredentialsError(f"could not refresh Drive token: {e}") from e
        log.info("tokens_refreshed")
        save_tokens(credentials, self.tokens_path)
        return credentials

    def authorize(self) -> Credentials:
        """Run the installed-app consent flow through the injected prompt."""
        flow = InstalledAppFlow.from_client_config(
            load_client_config(self.client_config_path),
            scopes=self.scopes,
            redirect_uri=LOOPBACK_REDIRECT_URI,
        )
        url, _ = flow.authorization_url(access_type="offline", prompt="consent")
        log.info("consent_required")
        answer = self.prompt(url).strip()
        if not answer:
            raise CredentialsError("no authorization response was provided")

        try:
            if answer.startswith("http"):
                # oauthlib insists on https even for loopback redirects
                flow.fetch_token(authorization_response=answer.replace("http://", "https://", 1))
            else:
                flow.fetch_token(code=answer)
        except Exception as e:
            raise CredentialsError(f"authorization failed: {e}") from e

        log.info("consent_granted")
        return flow.credentials

"""Google Drive v3 storage backend."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import httpx
import structlog
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from apk_release.auth.credentials import CredentialStore
from apk_release.errors import CredentialsError, PublishError, RemoteCreateError, RemoteQueryError
from apk_release.schemas import FOLDER_MIME_TYPE, FolderHandle, RemoteEntry
from apk_release.storage.base import StorageBackend
from apk_release.storage.retry import retry_with_backoff

log = structlog.get_logger(__name__)

ENTRY_FIELDS = "id,name,mimeType,parents,createdTime"


def escape_query_value(value: str) -> str:
    """Escape a literal for use inside a single-quoted Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def folder_query(name: str, parent: str | None = None) -> str:
    q = f"name = '{escape_query_value(name)}' and mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
    if parent is not None:
        q += f" and '{escape_query_value(parent)}' in parents"
    return q


def _entry(data: dict[str, Any]) -> RemoteEntry:
    return RemoteEntry(
        id=data["id"],
        name=data.get("name", ""),
        mime_type=data.get("mimeType"),
        parents=data.get("parents", []),
        created_time=data.get("createdTime"),
    )


class DriveStorage(StorageBackend):
    """Storage backend talking to the Drive REST API."""

    BASE_URL = "https://www.googleapis.com/drive/v3"
    UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
    SHARE_URL = "https://drive.google.com/file/d/{file_id}/view?usp=sharing"

    def __init__(
        self,
        credentials: Credentials | None = None,
        store: CredentialStore | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
        max_retries: int = 0,
    ):
        """
        Initialize Drive storage.

        Args:
            credentials: Authorized user credentials with a Drive scope
            store: Credential store consulted on first use when no credentials are given
            client: Optional preconfigured HTTP client (tests pass a mock transport)
            timeout: Per-request timeout in seconds
            max_retries: Retries for transient failures; 0 keeps every call single-shot
        """
        if credentials is None and store is None:
            raise ValueError("either credentials or a credential store is required")
        self.credentials = credentials
        self.store = store
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._request = retry_with_backoff(max_retries=max_retries)(self._request_once)

    async def _auth_headers(self) -> dict[str, str]:
        if self.credentials is None:
            self.credentials = await asyncio.to_thread(self.store.get_credentials)
        if not self.credentials.valid:
            log.info("drive_token_refresh")
            try:
                if self.store is not None:
                    await asyncio.to_thread(self.store.refresh, self.credentials)
                else:
                    await asyncio.to_thread(self.credentials.refresh, Request())
            except GoogleAuthError as e:
                raise CredentialsError(f"could not refresh Drive token: {e}") from e
        headers: dict[str, str] = {}
        self.credentials.apply(headers)
        return headers

    async def _request_once(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = await self._auth_headers()
        headers.update(kwargs.pop("headers", {}))
        response = await self.client.request(method, url, headers=headers, **kwargs)
        response.raise_for_status()
        return response

    async def find_folders(self, name: str, parent: FolderHandle | None = None) -> list[RemoteEntry]:
        params = {
            "q": folder_query(name, parent),
            "orderBy": "createdTime",
            "spaces": "drive",
            "fields": f"files({ENTRY_FIELDS})",
        }
        try:
            response = await self._request("GET", f"{self.BASE_URL}/files", params=params)
        except httpx.HTTPError as e:
            log.error("drive_folder_query_failed", name=name, parent=parent, error=str(e))
            raise RemoteQueryError(f"could not list folder {name!r}: {e}") from e

        entries = [_entry(f) for f in response.json().get("files", [])]
        log.debug("drive_folders_found", name=name, parent=parent, n=len(entries))
        return entries

    async def create_folder(self, name: str, parent: FolderHandle | None = None) -> FolderHandle:
        body: dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent is not None:
            body["parents"] = [parent]
        try:
            response = await self._request(
                "POST", f"{self.BASE_URL}/files", params={"fields": ENTRY_FIELDS}, json=body
            )
        except httpx.HTTPError as e:
            log.error("drive_folder_create_failed", name=name, parent=parent, error=str(e))
            raise RemoteCreateError(f"could not create folder {name!r}: {e}") from e

        folder_id = response.json()["id"]
        log.info("folder_created", name=name, parent=parent, folder_id=folder_id)
        return FolderHandle(folder_id)

    async def upload_file(
        self, path: Path, name: str, parent: FolderHandle, mime_type: str
    ) -> RemoteEntry:
        content = path.read_bytes()
        try:
            session = await self._request(
                "POST",
                self.UPLOAD_URL,
                params={"uploadType": "resumable", "fields": ENTRY_FIELDS},
                json={"name": name, "parents": [parent]},
                headers={
                    "X-Upload-Content-Type": mime_type,
                    "X-Upload-Content-Length": str(len(content)),
                },
            )
            upload_url = session.headers["Location"]
            response = await self._request(
                "PUT", upload_url, content=content, headers={"Content-Type": mime_type}
            )
        except (httpx.HTTPError, KeyError) as e:
            log.error("drive_upload_failed", name=name, parent=parent, error=str(e))
            raise PublishError(f"could not upload {path}: {e}") from e

        entry = _entry(response.json())
        log.info("artifact_uploaded", name=name, file_id=entry.id, size=len(content))
        return entry

    async def share_publicly(self, file_id: str) -> None:
        try:
            await self._request(
                "POST",
                f"{self.BASE_URL}/files/{file_id}/permissions",
                json={"type": "anyone", "role": "reader"},
            )
        except httpx.HTTPError as e:
            log.error("drive_permission_failed", file_id=file_id, error=str(e))
            raise PublishError(f"could not share file {file_id}: {e}") from e
        log.info("permission_granted", file_id=file_id, type="anyone", role="reader")

    def share_link(self, file_id: str) -> str:
        return self.SHARE_URL.format(file_id=file_id)

    async def close(self) -> None:
        await self.client.aclose()

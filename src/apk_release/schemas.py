from __future__ import annotations

from datetime import date, datetime
from typing import NewType

from pydantic import BaseModel, ConfigDict, Field, field_validator

FolderHandle = NewType("FolderHandle", str)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
APK_MIME_TYPE = "application/vnd.android.package-archive"


class FolderPath(BaseModel):
    """Folder names to resolve, root first."""

    model_config = ConfigDict(frozen=True)

    segments: tuple[str, ...] = Field(..., min_length=1)

    @field_validator("segments")
    @classmethod
    def _no_blank_segments(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for name in value:
            if not name.strip():
                raise ValueError("folder names must not be blank")
        return value

    @classmethod
    def of(cls, *names: str) -> FolderPath:
        return cls(segments=tuple(names))

    @classmethod
    def for_release(cls, root: str, app_name: str, day: date) -> FolderPath:
        return cls.of(root, app_name, day.strftime("%Y-%m-%d"))

    def __str__(self) -> str:
        return "/".join(self.segments)


class RemoteEntry(BaseModel):
    id: str
    name: str
    mime_type: str | None = None
    parents: list[str] = Field(default_factory=list)
    created_time: datetime | None = None


class PublishedArtifact(BaseModel):
    file_id: str
    name: str
    size: int
    link: str


class BuildOutput(BaseModel):
    command: list[str]
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""


class ReleaseResult(BaseModel):
    build: BuildOutput | None = None
    folder: str
    artifact: PublishedArtifact
    notified: bool = False
    notify_error: str | None = None

"""Exception hierarchy for the release workflow."""
from __future__ import annotations


class ReleaseError(Exception):
    """Base class for every failure raised by the release workflow."""


class BuildFailure(ReleaseError):
    def __init__(self, returncode: int, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"build exited with status {returncode}: {stderr.strip()}")


class CredentialsError(ReleaseError):
    """Client secrets are missing or authorization could not be obtained."""


class RemoteQueryError(ReleaseError):
    """A list/search call against the storage service did not complete."""


class RemoteCreateError(ReleaseError):
    """The storage service refused or failed to create a folder."""


class PublishError(ReleaseError):
    """Uploading the artifact or granting link access failed."""


class NotifyError(ReleaseError):
    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)

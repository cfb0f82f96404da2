"""Error kinds raised by the file upload/download flows.

Every failure carries a :class:`FileErrorKind` so the HTTP layer can map it
to a status code with a lookup instead of string matching.
"""

from __future__ import annotations

import enum


class FileErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    STORAGE_FAILURE = "storage_failure"
    PERSISTENCE_FAILURE = "persistence_failure"
    PAYLOAD_TOO_LARGE = "payload_too_large"


class FileServiceError(Exception):
    """Base class for file flow failures."""

    kind: FileErrorKind


class NotFound(FileServiceError):
    """No file record exists for the requested object id."""

    kind = FileErrorKind.NOT_FOUND

    def __init__(self, object_id: str) -> None:
        self.object_id = object_id
        super().__init__(f"File not found: {object_id}")


class Unauthorized(FileServiceError):
    """The access policy denied the requesting subject."""

    kind = FileErrorKind.UNAUTHORIZED

    def __init__(self, object_id: str, subject_id: str) -> None:
        self.object_id = object_id
        self.subject_id = subject_id
        super().__init__(f"Subject {subject_id} may not view {object_id}")


class StorageFailure(FileServiceError):
    """An object store put/get/remove failed."""

    kind = FileErrorKind.STORAGE_FAILURE


class PersistenceFailure(FileServiceError):
    """A metadata store read or write failed."""

    kind = FileErrorKind.PERSISTENCE_FAILURE


class PayloadTooLarge(FileServiceError):
    """Upload exceeds the configured size limit."""

    kind = FileErrorKind.PAYLOAD_TOO_LARGE

    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(
            f"File too large: {size_bytes} bytes (max {max_bytes} bytes)"
        )

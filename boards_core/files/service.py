"""Upload and download flows for file attachments.

Ordering contract:

* upload writes the blob first and records metadata only after the object
  store acknowledged the write;
* download resolves the record, applies :func:`may_view`, and only then
  touches the object store.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO

import structlog

from boards_core.file_utils import default_file_name, resolve_content_type
from boards_core.files.errors import (
    NotFound,
    PayloadTooLarge,
    StorageFailure,
    Unauthorized,
)
from boards_core.files.metadata import FileMetadataStore
from boards_core.files.policy import Subject, may_view
from boards_core.models.file import FileRecord
from boards_core.storage import BlobStream, ObjectStore

logger = structlog.get_logger()


@dataclass
class FileDownload:
    """An opened blob plus the metadata needed to build the response."""

    chunks: BlobStream
    file_name: str
    content_type: str
    size_bytes: int | None = None


class FileService:
    """Orchestrates the object store and metadata store for one bucket."""

    def __init__(
        self,
        object_store: ObjectStore,
        metadata_store: FileMetadataStore,
        bucket: str,
        max_upload_bytes: int | None = None,
    ) -> None:
        self.object_store = object_store
        self.metadata_store = metadata_store
        self.bucket = bucket
        self.max_upload_bytes = max_upload_bytes

    async def upload(
        self,
        owner_id: str,
        stream: BinaryIO,
        file_name: str | None,
        content_type: str | None,
        is_public: bool,
        length: int = -1,
    ) -> str:
        """Store ``stream`` and return the new object id.

        The client's file name and content type are stored as sent; only a
        missing value falls back to ``upload`` or a guess from the extension.
        With ``length=-1`` the size limit is enforced while streaming.

        Raises:
            PayloadTooLarge: the payload is over the limit; nothing was kept.
            StorageFailure: the blob write failed; nothing was recorded.
            PersistenceFailure: the record write failed.

        Whatever interrupts the record write, the blob is removed again
        unless that removal fails too.
        """
        if (
            self.max_upload_bytes is not None
            and length >= 0
            and length > self.max_upload_bytes
        ):
            raise PayloadTooLarge(length, self.max_upload_bytes)

        file_name = default_file_name(file_name)
        content_type = resolve_content_type(file_name, content_type)
        object_id = uuid.uuid4().hex

        size_bytes = await asyncio.to_thread(
            self.object_store.put,
            self.bucket,
            object_id,
            stream,
            length,
            content_type,
            self.max_upload_bytes,
        )

        record = FileRecord(
            object_id=object_id,
            owner_id=owner_id,
            file_name=file_name,
            content_type=content_type,
            is_public=is_public,
            size_bytes=size_bytes,
            created_at=datetime.now(timezone.utc),
        )
        try:
            await self.metadata_store.insert(record)
        except BaseException:
            await self._discard_blob(object_id)
            raise

        logger.info(
            "file_uploaded",
            object_id=object_id,
            owner_id=owner_id,
            size=size_bytes,
            is_public=is_public,
        )
        return object_id

    async def _discard_blob(self, object_id: str) -> None:
        try:
            await asyncio.to_thread(self.object_store.remove, self.bucket, object_id)
        except StorageFailure as e:
            logger.error("orphaned_blob", object_id=object_id, error=str(e))
        else:
            logger.warning("blob_discarded", object_id=object_id)

    async def download(self, object_id: str, subject: Subject) -> FileDownload:
        """Open ``object_id`` for ``subject``.

        Raises:
            NotFound: no record for ``object_id``.
            Unauthorized: the policy denied ``subject``.
            StorageFailure: the record exists but the blob could not be read.
        """
        record = await self.metadata_store.find_by_object_id(object_id)
        if record is None:
            raise NotFound(object_id)

        if not may_view(record, subject):
            logger.warning(
                "file_access_denied", object_id=object_id, subject_id=subject.id
            )
            raise Unauthorized(object_id, subject.id)

        chunks = await asyncio.to_thread(self.object_store.get, self.bucket, object_id)
        size_bytes = chunks.size if chunks.size is not None else record.size_bytes
        return FileDownload(
            chunks=chunks,
            file_name=record.file_name,
            content_type=record.content_type,
            size_bytes=size_bytes,
        )

"""MinIO-backed object store used for file attachments.

The ``minio`` client is synchronous; callers in async code are expected to
push these methods onto a worker thread (``asyncio.to_thread``).
"""

from __future__ import annotations

from typing import BinaryIO, Iterator

import structlog
from minio import Minio
from minio.error import MinioException
from urllib3.exceptions import HTTPError

from boards_core.config import Settings
from boards_core.files.errors import PayloadTooLarge, StorageFailure

logger = structlog.get_logger()

_CLIENT_ERRORS = (MinioException, HTTPError)


class _CountingReader:
    """File-like wrapper that tracks how many bytes MinIO pulled.

    Raises :class:`PayloadTooLarge` as soon as more than ``max_bytes`` were
    read, which aborts the upload before the rest of the payload is sent.
    """

    def __init__(self, raw: BinaryIO, max_bytes: int | None = None) -> None:
        self.raw = raw
        self.max_bytes = max_bytes
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        chunk = self.raw.read(size)
        self.bytes_read += len(chunk)
        if self.max_bytes is not None and self.bytes_read > self.max_bytes:
            raise PayloadTooLarge(self.bytes_read, self.max_bytes)
        return chunk


class BlobStream:
    """Chunked iterator over an open ``get_object`` response.

    The HTTP connection is released when iteration ends, on error, or when
    :meth:`close` is called, whichever comes first. ``iter(blob)`` returns
    the blob itself, so closing the iterator handed to a response releases
    the connection even if no chunk was ever pulled.
    """

    def __init__(self, response, chunk_size: int) -> None:
        self._response = response
        self._chunk_size = chunk_size
        self._chunks: Iterator[bytes] | None = None
        self._closed = False

    @property
    def size(self) -> int | None:
        length = self._response.headers.get("Content-Length")
        return int(length) if length is not None else None

    def __iter__(self) -> BlobStream:
        return self

    def __next__(self) -> bytes:
        if self._closed:
            raise StopIteration
        if self._chunks is None:
            self._chunks = iter(self._response.stream(self._chunk_size))
        try:
            return next(self._chunks)
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._response.close()
        self._response.release_conn()



class ObjectStore:
    """Put/get/remove blobs by key in a named bucket."""

    def __init__(
        self,
        client: Minio,
        part_size: int = 10 * 1024 * 1024,
        chunk_size: int = 32 * 1024,
    ) -> None:
        self.client = client
        self.part_size = part_size
        self.chunk_size = chunk_size

    @classmethod
    def from_settings(cls, settings: Settings) -> ObjectStore:
        client = Minio(
            endpoint=settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_secure,
            region=settings.minio_region,
        )
        return cls(
            client,
            part_size=settings.upload_part_size,
            chunk_size=settings.download_chunk_size,
        )

    def ensure_bucket(self, bucket: str) -> bool:
        """Create ``bucket`` if missing. Returns True when it was created."""
        try:
            if self.client.bucket_exists(bucket_name=bucket):
                return False
            self.client.make_bucket(bucket_name=bucket)
        except _CLIENT_ERRORS as e:
            raise StorageFailure(f"Could not ensure bucket {bucket}: {e}") from e
        logger.info("bucket_created", bucket=bucket)
        return True

    def put(
        self,
        bucket: str,
        key: str,
        stream: BinaryIO,
        length: int = -1,
        content_type: str = "application/octet-stream",
        max_bytes: int | None = None,
    ) -> int:
        """Stream ``stream`` into ``bucket/key`` and return the bytes written.

        With ``length=-1`` the payload is sent as a multipart upload in
        ``part_size`` pieces, so it is never held in memory as a whole.
        Reading past ``max_bytes`` raises :class:`PayloadTooLarge`; MinIO
        aborts the multipart upload and no object is left behind.
        """
        reader = _CountingReader(stream, max_bytes)
        try:
            self.client.put_object(
                bucket_name=bucket,
                object_name=key,
                data=reader,
                length=length,
                content_type=content_type,
                part_size=self.part_size if length < 0 else 0,
            )
        except _CLIENT_ERRORS as e:
            raise StorageFailure(f"Upload of {key} failed: {e}") from e
        return length if length >= 0 else reader.bytes_read

    def get(self, bucket: str, key: str) -> BlobStream:
        """Open ``bucket/key`` for reading.

        The request is issued immediately so a missing object fails here,
        before the caller commits to a response.
        """
        try:
            response = self.client.get_object(bucket_name=bucket, object_name=key)
        except _CLIENT_ERRORS as e:
            raise StorageFailure(f"Download of {key} failed: {e}") from e
        return BlobStream(response, self.chunk_size)

    def remove(self, bucket: str, key: str) -> None:
        try:
            self.client.remove_object(bucket_name=bucket, object_name=key)
        except _CLIENT_ERRORS as e:
            raise StorageFailure(f"Removal of {key} failed: {e}") from e

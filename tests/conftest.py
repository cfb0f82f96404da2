"""Shared test fixtures for the boards API test suite.

Provides mock database sessions, in-memory object/metadata stores and
factory helpers so tests can run without PostgreSQL or MinIO.
"""

from __future__ import annotations

import io
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest

from boards_core.config import Settings
from boards_core.files.errors import (
    PayloadTooLarge,
    PersistenceFailure,
    StorageFailure,
)
from boards_core.files.policy import Subject
from boards_core.files.service import FileService
from boards_core.models.file import FileRecord

JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"
AUDIENCE = "vlo_boards_api"
SCOPE = "VLO_BOARDS"


# ---------------------------------------------------------------------------
# Database mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_db_session():
    """Mock async SQLAlchemy session.

    Supports the patterns used by the metadata store:
        session.execute(stmt) -> result
        session.add(obj)
        session.commit()
    """
    session = AsyncMock()
    session.add = MagicMock()
    default_result = MagicMock()
    default_result.scalar_one_or_none.return_value = None
    session.execute = AsyncMock(return_value=default_result)
    return session


@pytest.fixture
def mock_session_factory(mock_db_session):
    """Mock async session factory compatible with ``async with factory() as session:``."""

    @asynccontextmanager
    async def _session_ctx():
        yield mock_db_session

    factory = MagicMock(side_effect=lambda: _session_ctx())
    return factory


# ---------------------------------------------------------------------------
# In-memory stores
# ---------------------------------------------------------------------------


class FakeBlob:
    """Stands in for :class:`boards_core.storage.BlobStream`."""

    def __init__(self, data: bytes, chunk_size: int = 4) -> None:
        self.data = data
        self.chunk_size = chunk_size
        self.offset = 0
        self.closed = False

    @property
    def size(self) -> int:
        return len(self.data)

    def __iter__(self):
        return self

    def __next__(self) -> bytes:
        if self.closed or self.offset >= len(self.data):
            self.close()
            raise StopIteration
        chunk = self.data[self.offset : self.offset + self.chunk_size]
        self.offset += len(chunk)
        return chunk

    def close(self) -> None:
        self.closed = True


class FakeObjectStore:
    """Dict-backed object store keyed by (bucket, key)."""

    def __init__(self) -> None:
        self.blobs: dict[tuple[str, str], bytes] = {}
        self.content_types: dict[tuple[str, str], str] = {}
        self.opened: list[FakeBlob] = []
        self.calls: list[str] = []
        self.fail_put = False
        self.fail_get = False
        self.fail_remove = False

    def put(
        self,
        bucket,
        key,
        stream,
        length=-1,
        content_type="application/octet-stream",
        max_bytes=None,
    ):
        self.calls.append("put")
        if self.fail_put:
            raise StorageFailure(f"Upload of {key} failed: simulated")
        data = stream.read()
        if max_bytes is not None and len(data) > max_bytes:
            raise PayloadTooLarge(len(data), max_bytes)
        self.blobs[(bucket, key)] = data
        self.content_types[(bucket, key)] = content_type
        return len(data)

    def get(self, bucket, key):
        self.calls.append("get")
        if self.fail_get or (bucket, key) not in self.blobs:
            raise StorageFailure(f"Download of {key} failed: simulated")
        blob = FakeBlob(self.blobs[(bucket, key)])
        self.opened.append(blob)
        return blob


    def remove(self, bucket, key):
        self.calls.append("remove")
        if self.fail_remove:
            raise StorageFailure(f"Removal of {key} failed: simulated")
        self.blobs.pop((bucket, key), None)

    def ensure_bucket(self, bucket):
        return False


class FakeMetadataStore:
    """Dict-backed metadata store keyed by object id."""

    def __init__(self) -> None:
        self.records: dict[str, FileRecord] = {}
        self.fail_insert = False

    async def insert(self, record: FileRecord) -> None:
        if self.fail_insert:
            raise PersistenceFailure(f"Could not save file record {record.object_id}")
        self.records[record.object_id] = record

    async def find_by_object_id(self, object_id: str) -> FileRecord | None:
        return self.records.get(object_id)


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def metadata_store():
    return FakeMetadataStore()


@pytest.fixture
def file_service(object_store, metadata_store):
    return FileService(
        object_store=object_store,
        metadata_store=metadata_store,
        bucket="boards",
        max_upload_bytes=1024,
    )


# ---------------------------------------------------------------------------
# Settings and tokens
# ---------------------------------------------------------------------------


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        auth_authority="",
        auth_audience=AUDIENCE,
        auth_jwt_secret=JWT_SECRET,
        auth_required_scope=SCOPE,
        minio_bucket="boards",
        max_upload_bytes=1024,
    )


@pytest.fixture
def make_token():
    """Factory for HS256 access tokens signed with the test secret."""

    def _make(
        sub: str | None = None,
        scope: str | list[str] | None = SCOPE,
        audience: str = AUDIENCE,
        expires_in: int = 300,
        typ: str = "at+jwt",
        secret: str = JWT_SECRET,
    ) -> str:
        now = int(time.time())
        payload = {
            "sub": sub or str(uuid.uuid4()),
            "aud": audience,
            "iat": now,
            "exp": now + expires_in,
        }
        if scope is not None:
            payload["scope"] = scope
        return jwt.encode(payload, secret, algorithm="HS256", headers={"typ": typ})

    return _make


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_subject():
    """Factory for Subject instances."""

    def _make(subject_id: str | None = None, scopes: set[str] | None = None) -> Subject:
        return Subject(
            id=subject_id or str(uuid.uuid4()),
            scopes=frozenset(scopes if scopes is not None else {SCOPE}),
        )

    return _make


@pytest.fixture
def make_record():
    """Factory for FileRecord instances."""

    def _make(
        owner_id: str | None = None,
        is_public: bool = False,
        file_name: str = "report.pdf",
        content_type: str = "application/pdf",
        object_id: str | None = None,
    ) -> FileRecord:
        return FileRecord(
            object_id=object_id or uuid.uuid4().hex,
            owner_id=owner_id or str(uuid.uuid4()),
            file_name=file_name,
            content_type=content_type,
            is_public=is_public,
            size_bytes=None,
            created_at=datetime.now(timezone.utc),
        )

    return _make


@pytest.fixture
def payload():
    return io.BytesIO(b"%PDF-1.4 quarterly numbers")

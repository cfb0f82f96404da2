"""Relational store for file records."""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from boards_core.files.errors import PersistenceFailure
from boards_core.models.file import FileRecord

logger = structlog.get_logger()

# Driver-level connection errors (asyncpg, sockets) surface as OSError
_DB_ERRORS = (SQLAlchemyError, OSError)


class FileMetadataStore:
    """Insert and look up :class:`FileRecord` rows, one session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def insert(self, record: FileRecord) -> None:
        try:
            async with self.session_factory() as session:
                session.add(record)
                await session.commit()
        except _DB_ERRORS as e:
            raise PersistenceFailure(
                f"Could not save file record {record.object_id}: {e}"
            ) from e

    async def find_by_object_id(self, object_id: str) -> FileRecord | None:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(FileRecord).where(FileRecord.object_id == object_id)
                )
                return result.scalar_one_or_none()
        except _DB_ERRORS as e:
            raise PersistenceFailure(
                f"Could not load file record {object_id}: {e}"
            ) from e

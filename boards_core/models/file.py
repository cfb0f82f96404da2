"""File record model for MinIO-stored attachments."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from boards_core.models.base import Base


class FileRecord(Base):
    """Metadata for one blob in the attachments bucket.

    ``object_id`` doubles as the MinIO object key. Rows are written once,
    after the blob upload succeeded, and never updated.
    """

    __tablename__ = "files"

    object_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(255), index=True)
    file_name: Mapped[str]
    content_type: Mapped[str]
    is_public: Mapped[bool] = mapped_column(default=False)
    size_bytes: Mapped[int | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

"""SQLAlchemy models."""

from boards_core.models.base import Base
from boards_core.models.file import FileRecord

__all__ = [
    "Base",
    "FileRecord",
]

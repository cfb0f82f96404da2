"""View policy for stored files."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from boards_core.models.file import FileRecord


@dataclass(frozen=True)
class Subject:
    """Authenticated caller, as validated by the auth layer."""

    id: str
    scopes: frozenset[str] = frozenset()
    claims: dict[str, Any] = field(default_factory=dict, compare=False)


def may_view(record: FileRecord, subject: Subject) -> bool:
    """Public files are visible to everyone; private ones only to the owner."""
    return bool(record.is_public) or subject.id == record.owner_id

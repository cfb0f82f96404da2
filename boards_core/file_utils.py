"""Filename and MIME helpers shared by the upload and download paths."""

from __future__ import annotations

from urllib.parse import quote

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_FILE_NAME = "upload"

MIME_MAP = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "pdf": "application/pdf",
    "csv": "text/csv",
    "json": "application/json",
    "html": "text/html",
    "txt": "text/plain",
    "md": "text/markdown",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "zip": "application/zip",
    "xml": "application/xml",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mp3": "audio/mpeg",
}


def resolve_content_type(file_name: str, content_type: str | None) -> str:
    """Use the client's content type as sent; guess only when it is missing."""
    if content_type:
        return content_type
    ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    return MIME_MAP.get(ext, DEFAULT_CONTENT_TYPE)


def default_file_name(file_name: str | None) -> str:
    """Keep the client's file name as sent; a missing name becomes ``upload``."""
    return file_name or DEFAULT_FILE_NAME


def attachment_disposition(file_name: str) -> str:
    """Build a non-inline ``Content-Disposition`` header value.

    Non-ASCII names get an RFC 5987 ``filename*`` parameter next to an
    ASCII fallback.
    """
    fallback = "".join(
        c if c.isascii() and c.isprintable() and c not in '"\\' else "_"
        for c in file_name
    )
    if fallback == file_name:
        return f'attachment; filename="{file_name}"'
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name)}"

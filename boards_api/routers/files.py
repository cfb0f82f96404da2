"""File upload and download endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from boards_api.auth import require_api_scope
from boards_core.file_utils import attachment_disposition
from boards_core.files.errors import FileErrorKind, FileServiceError
from boards_core.files.policy import Subject
from boards_core.files.service import FileService

logger = structlog.get_logger()

router = APIRouter(tags=["files"])

STATUS_BY_KIND: dict[FileErrorKind, int] = {
    FileErrorKind.NOT_FOUND: 404,
    FileErrorKind.UNAUTHORIZED: 401,
    FileErrorKind.STORAGE_FAILURE: 500,
    FileErrorKind.PERSISTENCE_FAILURE: 500,
    FileErrorKind.PAYLOAD_TOO_LARGE: 413,
}

DETAIL_BY_KIND: dict[FileErrorKind, str] = {
    FileErrorKind.NOT_FOUND: "No file of given id exists",
    FileErrorKind.UNAUTHORIZED: "Unauthorized",
}

INTERNAL_ERROR_DETAIL = "Internal server error"


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


def _to_http_error(error: FileServiceError) -> HTTPException:
    status = STATUS_BY_KIND[error.kind]
    if status == 500:
        logger.error("file_operation_failed", kind=error.kind.value, error=str(error))
    detail = DETAIL_BY_KIND.get(error.kind, str(error) if status < 500 else INTERNAL_ERROR_DETAIL)
    return HTTPException(status_code=status, detail=detail)


@router.post("/UploadFile")
async def upload_file(
    file: UploadFile = File(...),
    is_public_form: bool | None = Form(None, alias="isPublic"),
    is_public_query: bool | None = Query(None, alias="isPublic"),
    subject: Subject = Depends(require_api_scope),
    service: FileService = Depends(get_file_service),
) -> str:
    """Store the uploaded file and return its object id.

    Only an oversized payload is reported as such; every other failure
    collapses to a 500.
    """
    is_public = bool(is_public_form if is_public_form is not None else is_public_query)
    try:
        return await service.upload(
            owner_id=subject.id,
            stream=file.file,
            file_name=file.filename,
            content_type=file.content_type,
            is_public=is_public,
            length=file.size if file.size is not None else -1,
        )
    except FileServiceError as e:
        if e.kind is not FileErrorKind.PAYLOAD_TOO_LARGE:
            logger.error("file_upload_failed", owner_id=subject.id, error=str(e))
            raise HTTPException(status_code=500, detail=INTERNAL_ERROR_DETAIL)
        raise _to_http_error(e)
    finally:
        await file.close()


@router.post("/GetFile")
async def get_file(
    id: str = Query(...),
    subject: Subject = Depends(require_api_scope),
    service: FileService = Depends(get_file_service),
) -> StreamingResponse:
    """Stream a stored file back as an attachment."""
    try:
        download = await service.download(id, subject)
    except FileServiceError as e:
        raise _to_http_error(e)

    headers = {"Content-Disposition": attachment_disposition(download.file_name)}
    if download.size_bytes is not None:
        headers["Content-Length"] = str(download.size_bytes)
    # Releases the storage connection even when the client drops mid-stream
    return StreamingResponse(
        download.chunks,
        media_type=download.content_type,
        headers=headers,
        background=BackgroundTask(download.chunks.close),
    )

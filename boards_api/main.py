"""Boards API: FastAPI app exposing file attachment endpoints."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from boards_api.auth import TokenValidator
from boards_api.routers import files, health
from boards_core.config import Settings, get_settings
from boards_core.database import create_engine, create_session_factory
from boards_core.files.metadata import FileMetadataStore
from boards_core.files.service import FileService
from boards_core.storage import ObjectStore

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
)

logger = structlog.get_logger()


def build_file_service(settings: Settings) -> FileService:
    """Wire the object store and metadata store from settings."""
    session_factory = create_session_factory(create_engine(settings))
    return FileService(
        object_store=ObjectStore.from_settings(settings),
        metadata_store=FileMetadataStore(session_factory),
        bucket=settings.minio_bucket,
        max_upload_bytes=settings.max_upload_bytes,
    )


def create_app(
    settings: Settings | None = None,
    file_service: FileService | None = None,
    token_validator: TokenValidator | None = None,
) -> FastAPI:
    """Build the app. Collaborators not passed in are created from settings."""
    settings = settings or get_settings()

    app = FastAPI(title="vlo_boards_api", version="1.0.0")
    app.state.settings = settings
    app.state.file_service = file_service or build_file_service(settings)
    app.state.token_validator = token_validator or TokenValidator(settings)

    app.include_router(health.router)
    app.include_router(files.router)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_error",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    logger.info("boards_api_ready", bucket=settings.minio_bucket)
    return app

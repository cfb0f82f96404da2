"""Admin CLI for the boards API."""

from __future__ import annotations

import asyncio
import json

import click

from boards_core.config import get_settings
from boards_core.database import create_engine, create_session_factory
from boards_core.files.errors import StorageFailure
from boards_core.files.metadata import FileMetadataStore
from boards_core.models import Base
from boards_core.storage import ObjectStore


def run_async(coro):
    """Run an async function in a new event loop."""
    return asyncio.run(coro)


@click.group()
def cli():
    """Boards API administration CLI."""
    pass


# --- Setup ---


@cli.command()
def setup():
    """Create database tables and the MinIO bucket."""
    click.echo("Creating database tables...")
    run_async(_create_tables())

    click.echo("Creating MinIO bucket if not exists...")
    _create_bucket()

    click.echo("Setup complete.")


async def _create_tables():
    engine = create_engine(get_settings())
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


def _create_bucket():
    settings = get_settings()
    store = ObjectStore.from_settings(settings)
    try:
        created = store.ensure_bucket(settings.minio_bucket)
    except StorageFailure as e:
        raise click.ClickException(str(e))
    if created:
        click.echo(f"  Created bucket: {settings.minio_bucket}")
    else:
        click.echo(f"  Bucket already exists: {settings.minio_bucket}")


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
def serve(host, port):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run("boards_api.main:create_app", factory=True, host=host, port=port)


# --- Files ---


@cli.group()
def files():
    """File record inspection commands."""
    pass


@files.command("show")
@click.argument("object_id")
def show_file(object_id):
    """Print the metadata recorded for OBJECT_ID."""
    record = run_async(_load_record(object_id))
    if record is None:
        click.echo(f"File not found: {object_id}")
        return
    click.echo(json.dumps(record, indent=2))


async def _load_record(object_id: str) -> dict | None:
    engine = create_engine(get_settings())
    try:
        store = FileMetadataStore(create_session_factory(engine))
        record = await store.find_by_object_id(object_id)
    finally:
        await engine.dispose()
    if record is None:
        return None
    return {
        "object_id": record.object_id,
        "owner_id": record.owner_id,
        "file_name": record.file_name,
        "content_type": record.content_type,
        "is_public": record.is_public,
        "size_bytes": record.size_bytes,
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


if __name__ == "__main__":
    cli()

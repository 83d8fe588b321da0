"""CLI commands for chunkvault."""

import asyncio
import json
import logging
import mimetypes
from pathlib import Path

import click

from chunkvault.config import get_settings
from chunkvault.db.services.video_service import (
    delete_video,
    get_video,
    load_video_payload,
    save_video,
)
from chunkvault.lib.chunking import detect_layout, is_layout_field
from chunkvault.lib.exceptions import ChunkVaultError
from chunkvault.lib.files import data_url_to_bytes, file_to_data_url, format_file_size, is_base64_data_url
from chunkvault.lib.storage import StorageManager


async def _with_store(store_name, func):
    """Run ``func(store)`` against a configured store and close it afterwards."""
    storage = StorageManager(get_settings().storage)
    try:
        store = await storage.get(store_name)
        return await func(store)
    finally:
        await storage.close()


def _run(coro):
    try:
        return asyncio.run(coro)
    except ChunkVaultError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.version_option(package_name="chunkvault")
@click.option(
    "--log-level",
    default="warning",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
)
def cli(log_level):
    """chunkvault - chunked image and video storage for document stores."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8080, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(host, port, reload):
    """Run the video API server."""
    import signal

    from hypercorn.asyncio import serve as hypercorn_serve
    from hypercorn.config import Config

    config = Config()
    config.application_path = "chunkvault.asgi:app"
    config.bind = [f"{host}:{port}"]
    config.loglevel = logging.getLevelName(logging.getLogger().level)
    config.include_server_header = False

    if reload:
        config.use_reloader = True
        from hypercorn.run import run
        run(config)
        return

    from chunkvault.asgi import app

    shutdown_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    loop.add_signal_handler(signal.SIGINT, shutdown_event.set)
    loop.add_signal_handler(signal.SIGTERM, shutdown_event.set)
    try:
        loop.run_until_complete(
            hypercorn_serve(app, config, shutdown_trigger=shutdown_event.wait)
        )
    finally:
        loop.close()


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--id", "video_id", default=None, help="Replace the video with this id")
@click.option("--title", default=None, help="Title stored on the record (defaults to the filename)")
@click.option("--store", default=None, help="Named store from app.yaml")
def put(file, video_id, title, store):
    """Upload an image or video file."""
    content_type = mimetypes.guess_type(file.name)[0] or "application/octet-stream"
    try:
        result = file_to_data_url(file.read_bytes(), content_type, filename=file.name)
    except ChunkVaultError as exc:
        raise click.ClickException(str(exc)) from exc

    async def _put(document_store):
        return await save_video(
            document_store,
            result.data_url,
            fields={"title": title or file.name, "fileSize": result.file_size},
            video_id=video_id,
            chunking=get_settings().chunking,
        )

    saved = _run(_with_store(store, _put))
    click.echo(
        f"{saved.id} {saved.layout.value} chunks={saved.chunk_count} "
        f"size={format_file_size(result.file_size)}"
    )


@cli.command()
@click.argument("video_id")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the decoded file here instead of printing the data URL")
@click.option("--store", default=None, help="Named store from app.yaml")
def get(video_id, output, store):
    """Download a stored video."""

    async def _get(document_store):
        return await load_video_payload(document_store, video_id, chunking=get_settings().chunking)

    payload = _run(_with_store(store, _get))

    if output is None:
        click.echo(payload)
        return

    if not is_base64_data_url(payload):
        raise click.ClickException(f"Video {video_id} is not stored as a data URL: {payload[:80]}")
    try:
        data, content_type = data_url_to_bytes(payload)
    except ValueError as exc:
        raise click.ClickException(f"Video {video_id} has a corrupt payload: {exc}") from exc
    output.write_bytes(data)
    click.echo(f"Wrote {format_file_size(len(data))} ({content_type}) to {output}")


@cli.command()
@click.argument("video_id")
@click.option("--store", default=None, help="Named store from app.yaml")
def info(video_id, store):
    """Show a video's record without its payload."""

    async def _info(document_store):
        return await get_video(document_store, video_id)

    record = _run(_with_store(store, _info))
    summary = {key: value for key, value in record.items() if not is_layout_field(key)}
    summary["layout"] = detect_layout(record).value
    summary["chunkCount"] = record.get("chunkCount", 0)
    click.echo(json.dumps(summary, indent=2, default=str))


@cli.command()
@click.argument("video_id")
@click.option("--store", default=None, help="Named store from app.yaml")
def rm(video_id, store):
    """Delete a video and its chunks."""

    async def _rm(document_store):
        return await delete_video(document_store, video_id)

    if not _run(_with_store(store, _rm)):
        raise click.ClickException(f"Video {video_id!r} not found")
    click.echo(f"Deleted {video_id}")


def main():
    cli()


if __name__ == "__main__":
    main()

"""CLI interface — thin wrapper over CatalogService and the HTTP server."""

import logging
from pathlib import Path
from typing import NoReturn

import typer

from baluflix.config import settings
from baluflix.errors import AuthError, BaluflixError, NotFoundError, ValidationError
from baluflix.service import CatalogService
from baluflix.storage.media import LocalMediaStore


app = typer.Typer(
    name="baluflix",
    help="Video catalog backend with admin publishing and range streaming.",
    no_args_is_help=True,
)


def _get_service() -> CatalogService:
    """Create a service instance with the configured storage backend."""
    from baluflix.server import build_repository

    settings.ensure_dirs()
    return CatalogService(build_repository(settings), settings.default_published)


def _get_media() -> LocalMediaStore:
    settings.ensure_dirs()
    return LocalMediaStore(settings.uploads_dir, settings.max_upload_bytes)


def _fail(e: Exception) -> NoReturn:
    typer.echo(f"❌ {e}", err=True)
    raise typer.Exit(code=1)


@app.command()
def add(
    url: str = typer.Argument(..., help="Video URL or bare video id."),
    title: str = typer.Option(..., "--title", "-t", help="Display title."),
    kind: str | None = typer.Option(None, "--type", help="Video, Song or Other."),
    thumb: str | None = typer.Option(None, "--thumb", help="Thumbnail URL."),
) -> None:
    """Add a catalog entry that references an external video."""
    svc = _get_service()
    try:
        video = svc.create_from_reference(title, url, kind=kind, thumbnail=thumb)
    except ValidationError as e:
        _fail(e)
    typer.echo(f"✅ Added: {video.title}")
    typer.echo(f"   Key:       {video.key}")
    typer.echo(f"   Video ID:  {video.video_id}")
    typer.echo(f"   Published: {'yes' if video.published else 'no'}")


@app.command()
def upload(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Media file to store."),
    title: str | None = typer.Option(None, "--title", "-t", help="Display title."),
    description: str | None = typer.Option(None, "--description", "-d", help="Description."),
) -> None:
    """Store a local media file as an unpublished catalog entry."""
    svc = _get_service()
    try:
        stored = _get_media().copy_from(path)
        video = svc.create_from_upload(
            stored, settings.admin_username, title=title, description=description
        )
    except BaluflixError as e:
        _fail(e)
    typer.echo(f"📼 Uploaded: {video.title}")
    typer.echo(f"   Key:      {video.key}")
    typer.echo(f"   Stream:   {video.source_ref}")


@app.command(name="list")
def list_videos(
    all_: bool = typer.Option(False, "--all", "-a", help="Include unpublished videos."),
) -> None:
    """List catalog entries, newest first."""
    svc = _get_service()
    videos = svc.list_all() if all_ else svc.list_published()
    if not videos:
        typer.echo("Catalog is empty. Use 'baluflix add <url>' to add a video.")
        return
    for i, v in enumerate(videos, 1):
        state = "published" if v.published else "draft"
        typer.echo(f"  {i}. {v.key}  {state:<9s}  {v.kind.value:<5s}  {v.title}")


@app.command()
def publish(key: str = typer.Argument(..., help="Storage key of the video.")) -> None:
    """Make a video visible in the public listing."""
    svc = _get_service()
    try:
        video = svc.publish(key)
    except NotFoundError as e:
        _fail(e)
    typer.echo(f"📣 Published: {video.title} ({video.key})")


@app.command()
def token(
    username: str = typer.Option(..., "--username", "-u", prompt=True),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """Log in as the admin and print a bearer token."""
    from baluflix.server import build_auth

    try:
        issued = build_auth(settings).login(username, password)
    except AuthError as e:
        _fail(e)
    typer.echo(issued.access_token)


@app.command()
def serve(
    host: str = typer.Option(settings.host, "--host", help="Host to bind to."),
    port: int = typer.Option(settings.port, "--port", help="Port to bind to."),
    reload: bool = typer.Option(False, "--reload", help="Enable hot-reload for development."),
) -> None:
    """Start the baluflix HTTP server."""
    import uvicorn

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    typer.echo(f"Starting baluflix on http://{host}:{port}")
    uvicorn.run(
        "baluflix.server:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )

"""CLI commands for gooji using Typer and Rich.

Implements the CLI commands:
- serve: Run the HTTP API
- check: Validate ffmpeg and storage directories
- ingest: Ingest a local video file through the upload pipeline
- list: List stored videos in a table
- show: Show one video's metadata
- delete: Delete a video, its metadata and thumbnail
- thumbnail: Regenerate a video's thumbnail
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from gooji import validate_dependencies
from gooji.config import Settings, load_settings
from gooji.container import build_services
from gooji.errors import VideoError
from gooji.logging_config import configure_logging
from gooji.schemas.video import ArtifactOutcome, UploadHeader, UploadMetadata
from gooji.services.catalog import VideoCatalog
from gooji.services.metadata_store import MetadataStore
from gooji.services.video_store import VideoStore

# Content types the upload allow-list expects for each extension
_CONTENT_TYPES = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".avi": "video/avi",
    ".mov": "video/mov",
}

app = typer.Typer(name="gooji", help="Record, upload and browse short videos")
console = Console()


def _settings() -> Settings:
    settings = load_settings()
    configure_logging(settings.logging, settings.storage.logs)
    settings.storage.ensure_directories()
    return settings


def _catalog(settings: Settings) -> VideoCatalog:
    """Catalog over the stores only; no ffmpeg needed."""
    metadata_store = MetadataStore(settings.storage.metadata)
    video_store = VideoStore(
        settings.storage, metadata_store, extensions=settings.upload.allowed_extensions
    )
    return VideoCatalog(metadata_store, video_store)


def _fail(message: str, code: int = 1):
    console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(code=code)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listen port"),
):
    """Run the HTTP API server."""
    import uvicorn

    from gooji.api.app import create_app

    settings = load_settings()
    uvicorn.run(
        create_app(settings),
        host=host or settings.server.host,
        port=port or settings.server.port,
    )


@app.command()
def check():
    """Validate ffmpeg and the storage layout."""
    settings = _settings()

    # Fail-fast dependency validation
    try:
        version = validate_dependencies(settings.ffmpeg.path)
    except RuntimeError as e:
        _fail(str(e))

    console.print(f"[green]✓[/green] {version}")
    for directory in settings.storage.directories():
        console.print(f"[green]✓[/green] {Path(directory).resolve()}")


@app.command()
def ingest(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Video file"),
    title: str = typer.Option("", "--title", "-t", help="Video title"),
    description: str = typer.Option("", "--description", "-d", help="Video description"),
    tag: Optional[list[str]] = typer.Option(None, "--tag", help="Tag (repeatable)"),
    content_type: Optional[str] = typer.Option(
        None, "--content-type", help="Declared MIME type (default: from extension)"
    ),
):
    """Ingest a local video file as if it had been uploaded."""
    settings = _settings()

    try:
        services = build_services(settings)
    except RuntimeError as e:
        _fail(str(e))

    header = UploadHeader(
        filename=file.name,
        content_type=content_type or _CONTENT_TYPES.get(file.suffix.lower(), ""),
        size=file.stat().st_size,
    )
    metadata = UploadMetadata(title=title, description=description, tags=tag or [])

    try:
        with open(file, "rb") as stream:
            with console.status("[bold green]Ingesting video..."):
                record = services.ingestion.process_upload(stream, header, metadata)
    except VideoError as e:
        services.close()
        _fail(f"{e.kind.value}: {e.message}")

    with console.status("[bold green]Generating thumbnail..."):
        services.thumbnail_queue.shutdown(wait=True)

    thumb_status = services.thumbnail_queue.status.get(record.id, {}).get("status", "unknown")
    console.print(f"[green]✓[/green] Ingested {record.filename}")
    console.print(f"[green]ID:[/green] {record.id}")
    console.print(f"[green]Duration:[/green] {record.duration:.2f}s")
    console.print(f"[green]Thumbnail:[/green] {thumb_status}")


@app.command(name="list")
def list_videos():
    """List all stored videos."""
    catalog = _catalog(_settings())
    records = catalog.list_videos()

    if not records:
        console.print("[yellow]No videos found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Duration", justify="right")
    table.add_column("Tags")
    table.add_column("Created")

    for record in records:
        # Truncate title to 50 chars
        title_display = record.title if len(record.title) <= 50 else record.title[:47] + "..."
        table.add_row(
            record.id,
            title_display or "[dim](untitled)[/dim]",
            f"{record.duration:.1f}s",
            ", ".join(record.tags),
            record.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@app.command()
def show(video_id: str = typer.Argument(..., help="Video ID")):
    """Show metadata for one video."""
    settings = _settings()
    catalog = _catalog(settings)

    try:
        record = catalog.get_video(video_id)
    except VideoError as e:
        _fail(e.message)

    has_video = catalog.video_store.exists(record.filename)
    try:
        has_thumbnail = catalog.thumbnail_file(record.id) is not None
    except VideoError:
        has_thumbnail = False

    info_lines = [
        f"[bold]ID:[/bold] {record.id}",
        f"[bold]Filename:[/bold] {record.filename}",
        f"[bold]Title:[/bold] {record.title}",
        f"[bold]Description:[/bold] {record.description}",
        f"[bold]Duration:[/bold] {record.duration:.2f}s",
        f"[bold]Tags:[/bold] {', '.join(record.tags)}",
        f"[bold]Created:[/bold] {record.created_at.strftime('%Y-%m-%d %H:%M:%S')}",
        f"[bold]Video file:[/bold] {'[green]present[/green]' if has_video else '[red]missing[/red]'}",
        f"[bold]Thumbnail:[/bold] {'[green]present[/green]' if has_thumbnail else '[yellow]missing[/yellow]'}",
    ]

    panel = Panel(
        "\n".join(info_lines),
        title="[bold]Video[/bold]",
        border_style="blue",
    )
    console.print(panel)


@app.command()
def delete(
    video_id: str = typer.Argument(..., help="Video ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete a video, its metadata and its thumbnail."""
    catalog = _catalog(_settings())

    if not yes and not typer.confirm(f"Delete video {video_id}?"):
        raise typer.Exit(code=1)

    try:
        result = catalog.delete_video(video_id)
    except VideoError as e:
        _fail(e.message)

    for name in ("video", "metadata", "thumbnail"):
        outcome = getattr(result, name)
        color = _outcome_color(outcome)
        console.print(f"[bold]{name}:[/bold] [{color}]{outcome.value}[/{color}]")


@app.command()
def thumbnail(
    video_id: str = typer.Argument(..., help="Video ID"),
    at: Optional[float] = typer.Option(None, "--at", help="Timestamp in seconds"),
):
    """Regenerate the thumbnail for a stored video."""
    settings = _settings()

    try:
        services = build_services(settings)
    except RuntimeError as e:
        _fail(str(e))

    try:
        with console.status("[bold green]Generating thumbnail..."):
            path = services.ingestion.generate_thumbnail(video_id, timestamp=at)
    except VideoError as e:
        _fail(f"{e.kind.value}: {e.message}")
    finally:
        services.close()

    console.print(f"[green]✓[/green] Thumbnail written to {path}")


def _outcome_color(outcome: ArtifactOutcome) -> str:
    """Get Rich color for a delete outcome."""
    if outcome == ArtifactOutcome.DELETED:
        return "green"
    elif outcome == ArtifactOutcome.ABSENT:
        return "dim"
    else:
        return "red"

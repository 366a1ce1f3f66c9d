"""glimpse ingest — describe, embed and index one uploaded image."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from glimpse.api.handlers import ingest_event
from glimpse.cli._common import load_cli_config, run_with_timeout
from glimpse.cli.errors import err_no_gcp_project
from glimpse.ingest.events import UploadEvent
from glimpse.ingest.pipeline import IngestResult, IngestStatus
from glimpse.services import Services

console = Console()


def ingest_cmd(
    bucket: Annotated[str, typer.Option("--bucket", "-b", help="Storage bucket holding the image.")],
    path: Annotated[str, typer.Option("--path", "-p", help="Object path inside the bucket.")],
    content_type: Annotated[
        str | None,
        typer.Option("--content-type", "-t", help="MIME type of the object (e.g. image/jpeg)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the index database (default from config)."),
    ] = None,
    timeout: Annotated[
        float,
        typer.Option("--timeout", help="Overall time budget in seconds (0 = none)."),
    ] = 300.0,
) -> None:
    """Ingest one uploaded image into the keyword and vector indexes."""
    cfg = load_cli_config(console, db)
    if not cfg.gcp.resolved_project():
        console.print(err_no_gcp_project())
        raise typer.Exit(1)

    event = UploadEvent(bucket=bucket, path=path, content_type=content_type)
    result = run_with_timeout(console, _ingest(Services(cfg), event), timeout)

    if result.status is IngestStatus.SKIPPED:
        console.print(f"[yellow]↷ Skipped[/] {path} (not an image upload)")
        return
    if result.status is IngestStatus.FAILED:
        console.print(f"[red]✗ Failed[/] {path}: {result.error}")
        raise typer.Exit(1)

    record = result.record
    console.print(f"[green]✓ Stored[/] {record.id} — {record.title}")
    console.print(f"  [dim]{len(record.keywords)} keywords · {record.public_url}[/]")


async def _ingest(services: Services, event: UploadEvent) -> IngestResult:
    try:
        services.connect()
        return await ingest_event(services, event)
    finally:
        await services.aclose()

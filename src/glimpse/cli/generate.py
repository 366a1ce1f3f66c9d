"""glimpse generate — create images from a prompt, store and index them."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from glimpse.api import handlers
from glimpse.cli._common import load_cli_config, run_with_timeout
from glimpse.cli.errors import err_no_bucket, err_no_gcp_project, err_request_failed
from glimpse.services import Services

console = Console()


def generate_cmd(
    prompt: Annotated[str, typer.Argument(help="Text description of the image to create.")],
    count: Annotated[
        int, typer.Option("--count", "-c", help="Number of images (capped by generation.max_count).")
    ] = 1,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the index database (default from config)."),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw JSON payload.")] = False,
    timeout: Annotated[
        float,
        typer.Option("--timeout", help="Overall time budget in seconds (0 = none)."),
    ] = 300.0,
) -> None:
    """Generate images for PROMPT, save them to the bucket and index them."""
    cfg = load_cli_config(console, db)
    if not cfg.gcp.resolved_project():
        console.print(err_no_gcp_project())
        raise typer.Exit(1)
    if not cfg.storage.bucket:
        console.print(err_no_bucket())
        raise typer.Exit(1)

    status, payload = run_with_timeout(console, _generate(Services(cfg), prompt, count), timeout)
    if as_json:
        typer.echo(json.dumps(payload, indent=2))
        if status != 200:
            raise typer.Exit(1)
        return
    if status != 200:
        console.print(err_request_failed(payload.get("error", "Image generation failed.")))
        raise typer.Exit(1)

    console.print(f"[green]✓ Generated[/] {payload['count']} image(s) for {prompt!r}")
    for url in payload["imageUrls"]:
        console.print(f"  [dim]{url}[/]")


async def _generate(services: Services, prompt: str, count: int) -> tuple[int, dict]:
    try:
        services.connect()
        return await handlers.generate(services, prompt, count)
    finally:
        await services.aclose()

"""glimpse status — index sizes and configured models."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel

from glimpse.cli._common import load_cli_config
from glimpse.config import GlimpseConfig
from glimpse.services import Services

console = Console()


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the index database (default from config)."),
    ] = None,
) -> None:
    """Show index sizes and the configured models."""
    cfg = load_cli_config(console, db)
    _show_models_panel(cfg)

    db_path = Path(cfg.storage.db_path)
    if not db_path.exists():
        console.print(
            Panel(
                "[yellow]No index database found.[/]\n"
                "  Run:  glimpse ingest --bucket <bucket> --path <object> --content-type image/jpeg",
                title="[bold]Indexes[/]",
                expand=False,
            )
        )
        return

    images, vectors = asyncio.run(_counts(Services(cfg)))
    lines = [
        f"Database:       {db_path}",
        f"Keyword index:  {images} image(s)",
        f"Vector index:   {vectors} vector(s)",
    ]
    if images != vectors:
        lines.append(
            "[yellow]⚠ Index sizes differ — an ingestion was interrupted between writes.[/]\n"
            "  Re-ingest the affected uploads to resynchronise."
        )
    console.print(Panel("\n".join(lines), title="[bold]Indexes[/]", expand=False))


def _show_models_panel(cfg: GlimpseConfig) -> None:
    project = cfg.gcp.resolved_project() or "[red](not set)[/]"
    console.print(
        Panel(
            f"Project:      {project} ({cfg.gcp.location})\n"
            f"Description:  {cfg.description.model}\n"
            f"Embedding:    {cfg.embedding.model} · {cfg.embedding.dimension} dims",
            title="[bold]Models[/]",
            expand=False,
        )
    )


async def _counts(services: Services) -> tuple[int, int]:
    try:
        services.connect()
        return await services.keyword_index.count(), await services.vector_index.count()
    finally:
        await services.aclose()

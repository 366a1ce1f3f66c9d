"""glimpse serve — run the HTTP API with uvicorn."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console

from glimpse.api.app import create_app
from glimpse.cli._common import load_cli_config
from glimpse.services import Services

console = Console()


def serve_cmd(
    host: Annotated[str | None, typer.Option("--host", help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option("--port", help="Bind port.")] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the index database (default from config)."),
    ] = None,
) -> None:
    """Serve /search, /semantic-search and /ingest over HTTP."""
    cfg = load_cli_config(console, db)
    bind_host = host or cfg.server.host
    bind_port = port or cfg.server.port
    console.print(f"[bold]Glimpse API[/] on http://{bind_host}:{bind_port}")
    uvicorn.run(create_app(Services(cfg)), host=bind_host, port=bind_port, log_level="info")

"""glimpse search / glimpse semantic-search — query the indexes."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from glimpse.api import handlers
from glimpse.cli._common import load_cli_config, run_with_timeout
from glimpse.cli.errors import err_missing_query, err_no_db, err_no_gcp_project, err_request_failed
from glimpse.services import Services

console = Console()

_DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to the index database (default from config)."),
]
_LimitOption = Annotated[
    int | None,
    typer.Option("--limit", "-n", help="Maximum number of results (default from config)."),
]
_JsonOption = Annotated[bool, typer.Option("--json", help="Print the raw JSON payload.")]
_TimeoutOption = Annotated[
    float, typer.Option("--timeout", help="Overall time budget in seconds (0 = none).")
]


def search_cmd(
    query: Annotated[str, typer.Argument(help="Keywords. Empty shows the latest uploads.")] = "",
    limit: _LimitOption = None,
    db: _DbOption = None,
    as_json: _JsonOption = False,
    timeout: _TimeoutOption = 60.0,
) -> None:
    """Keyword search over image descriptions."""
    cfg = load_cli_config(console, db)
    if not Path(cfg.storage.db_path).exists():
        console.print(err_no_db(cfg.storage.db_path))
        raise typer.Exit(1)

    status, payload = run_with_timeout(
        console, _run(Services(cfg), handlers.search, query, limit), timeout
    )
    _render(status, payload, title=f"Keyword search: {query!r}" if query else "Latest uploads",
            as_json=as_json, with_score=False)


def semantic_search_cmd(
    query: Annotated[str, typer.Argument(help="Free-text description of the image you want.")] = "",
    limit: _LimitOption = None,
    db: _DbOption = None,
    as_json: _JsonOption = False,
    timeout: _TimeoutOption = 60.0,
) -> None:
    """Semantic (embedding) search over images."""
    if not query.strip():
        console.print(err_missing_query())
        raise typer.Exit(1)
    cfg = load_cli_config(console, db)
    if not cfg.gcp.resolved_project():
        console.print(err_no_gcp_project())
        raise typer.Exit(1)
    if not Path(cfg.storage.db_path).exists():
        console.print(err_no_db(cfg.storage.db_path))
        raise typer.Exit(1)

    status, payload = run_with_timeout(
        console, _run(Services(cfg), handlers.semantic_search, query, limit), timeout
    )
    _render(status, payload, title=f"Semantic search: {query!r}", as_json=as_json, with_score=True)


async def _run(services: Services, handler, query: str, limit: int | None):
    try:
        services.connect()
        return await handler(services, query, limit)
    finally:
        await services.aclose()


def _render(status: int, payload: dict, title: str, as_json: bool, with_score: bool) -> None:
    if as_json:
        typer.echo(json.dumps(payload, indent=2))
        if status != 200:
            raise typer.Exit(1)
        return

    if status != 200:
        console.print(err_request_failed(payload.get("error", "Request failed.")))
        raise typer.Exit(1)

    results = payload["results"]
    if not results:
        console.print("[yellow]No matching images.[/]")
        return

    table = Table(title=title, show_lines=False)
    table.add_column("ID", style="bold")
    if with_score:
        table.add_column("Score", justify="right")
    table.add_column("Title")
    table.add_column("URL", style="dim", overflow="fold")
    for r in results:
        row = [r["id"]]
        if with_score:
            row.append(f"{r['score']:.3f}")
        row.extend([r["title"], r["imageUrl"]])
        table.add_row(*row)
    console.print(table)

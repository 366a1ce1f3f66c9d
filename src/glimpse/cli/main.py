"""Glimpse CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer

from glimpse.cli.generate import generate_cmd
from glimpse.cli.ingest import ingest_cmd
from glimpse.cli.init import init_cmd
from glimpse.cli.search import search_cmd, semantic_search_cmd
from glimpse.cli.serve import serve_cmd
from glimpse.cli.status import status_cmd
from glimpse.log import configure_logging


def _version() -> str:
    try:
        return importlib.metadata.version("glimpse")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"glimpse {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="glimpse",
    help=(
        "Glimpse — describe, index and search uploaded images.\n\n"
        "  glimpse init             Create the index database and config.\n"
        "  glimpse ingest           Describe + embed one uploaded image.\n"
        "  glimpse search           Keyword search (empty query = latest uploads).\n"
        "  glimpse semantic-search  Embedding similarity search.\n"
        "  glimpse generate         Create images from a prompt and index them."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """Glimpse — describe, index and search uploaded images."""
    configure_logging(logging.DEBUG if verbose else logging.INFO)


app.command("init")(init_cmd)
app.command("ingest")(ingest_cmd)
app.command("search")(search_cmd)
app.command("semantic-search")(semantic_search_cmd)
app.command("generate")(generate_cmd)
app.command("status")(status_cmd)
app.command("serve")(serve_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed Glimpse version."""
    typer.echo(f"glimpse {_version()}")


if __name__ == "__main__":
    app()

"""glimpse init — scaffold a Glimpse project directory.

Creates:
  .glimpse.db              — empty index database with schema
  glimpse.yaml             — project config template (skipped if present)
  ~/.glimpse/config.yaml   — global model defaults (created once, mode 0o600)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from glimpse.config import ensure_global_config
from glimpse.db.connection import Database
from glimpse.db.schema import initialize

console = Console()

_DEFAULT_PROJECT_DIR = Path(".")

_PROJECT_YAML = """\
# Glimpse project configuration.
# Credentials never go here; use application default credentials.

gcp:
  project: {project}
  location: us-central1

search:
  default_limit: 5
  score_threshold: 0.05

storage:
  db_path: .glimpse.db

server:
  port: 8080
  cors_origins: ["*"]
"""


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = _DEFAULT_PROJECT_DIR,
    project: Annotated[
        str,
        typer.Option("--project", help="Google Cloud project id written to glimpse.yaml."),
    ] = "",
) -> None:
    """Create the index database and config files for a new Glimpse project."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    console.print(f"\n[bold]Initializing Glimpse in {project_dir} …[/]\n")

    _create_database(project_dir)
    _create_glimpse_yaml(project_dir, project)

    cfg_path = ensure_global_config()
    console.print(f"  [green]✓[/] {cfg_path}")

    console.print(
        "\n[green]Done.[/] Next:\n"
        "  glimpse ingest --bucket <bucket> --path <object> --content-type image/jpeg\n"
        "  glimpse search <keywords>"
    )


def _create_database(project_dir: Path) -> None:
    db_path = project_dir / ".glimpse.db"
    conn = Database(db_path).connect()
    initialize(conn)
    conn.close()
    console.print("  [green]✓[/] .glimpse.db")


def _create_glimpse_yaml(project_dir: Path, project: str) -> None:
    target = project_dir / "glimpse.yaml"
    if target.exists():
        console.print("  [yellow]⚠[/]  glimpse.yaml already exists — left unchanged")
        return
    target.write_text(_PROJECT_YAML.format(project=project or "null"), encoding="utf-8")
    console.print("  [green]✓[/] glimpse.yaml")

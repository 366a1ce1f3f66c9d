"""Glimpse rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from glimpse.cli.errors import err_no_gcp_project
    console.print(err_no_gcp_project())
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_gcp_project() -> str:
    """No GCP project available for the model services."""
    return (
        "[red]Error:[/] No Google Cloud project configured.\n"
        "  Set:  export GOOGLE_CLOUD_PROJECT=<project-id>\n"
        "  or add  gcp.project: <project-id>  to glimpse.yaml"
    )


def err_config(message: str) -> str:
    """Config file contains an invalid or forbidden value."""
    return f"[red]Error:[/] Invalid configuration.\n  {message}"


def err_no_db(db_path: str = ".glimpse.db") -> str:
    """No index database found."""
    return (
        f"[red]Error:[/] No index database found at '{db_path}'.\n"
        "  Run:  glimpse ingest --bucket <bucket> --path <object> --content-type image/jpeg"
    )


def err_missing_query() -> str:
    """Semantic search invoked without a query."""
    return (
        "[red]Error:[/] Missing search query.\n"
        '  Run:  glimpse semantic-search "a dog on a beach"'
    )


def err_timeout(seconds: float) -> str:
    """Command exceeded its wall-clock budget."""
    return (
        f"[red]Error:[/] Timed out after {seconds:g}s.\n"
        "  Remote calls may be rate-limited; retry later or raise --timeout."
    )


def err_request_failed(message: str) -> str:
    """Search returned an error payload."""
    return (
        f"[red]Error:[/] {message}\n"
        "  Re-run with  glimpse --verbose  to see the underlying cause."
    )


def err_no_bucket() -> str:
    """Image generation needs a bucket to write into."""
    return (
        "[red]Error:[/] No storage bucket configured for generated images.\n"
        "  Set:  export GLIMPSE_STORAGE_BUCKET=<bucket>\n"
        "  or add  storage.bucket: <bucket>  to glimpse.yaml"
    )

"""Tests for CLI error messages: each names the cause and the fix."""

from __future__ import annotations

import pytest

from glimpse.cli.errors import (
    err_config,
    err_missing_query,
    err_no_db,
    err_no_gcp_project,
    err_request_failed,
    err_timeout,
)


@pytest.mark.parametrize(
    "message",
    [
        err_no_gcp_project(),
        err_config("bad value"),
        err_no_db(),
        err_missing_query(),
        err_timeout(30),
        err_request_failed("Search failed."),
    ],
)
def test_messages_start_with_error_marker(message: str) -> None:
    assert message.startswith("[red]Error:[/]")
    assert "\n" in message


def test_no_gcp_project_names_env_var() -> None:
    assert "GOOGLE_CLOUD_PROJECT" in err_no_gcp_project()


def test_no_db_includes_path_and_command() -> None:
    msg = err_no_db("/data/x.db")
    assert "/data/x.db" in msg
    assert "glimpse ingest" in msg


def test_missing_query_shows_example() -> None:
    assert "glimpse semantic-search" in err_missing_query()


def test_timeout_formats_seconds() -> None:
    assert "30s" in err_timeout(30)
    assert "2.5s" in err_timeout(2.5)


def test_request_failed_includes_message() -> None:
    assert "Search failed." in err_request_failed("Search failed.")

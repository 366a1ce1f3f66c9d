"""Tests for glimpse ingest."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from typer.testing import CliRunner

from glimpse.cli.ingest import _ingest
from glimpse.cli.main import app
from glimpse.db.connection import Database
from glimpse.db.keyword_index import SqliteKeywordIndex
from glimpse.errors import RemoteCallError
from glimpse.ingest.events import UploadEvent
from glimpse.remote.describer import Description, DescriptionClient
from glimpse.remote.embedder import EmbeddingClient
from helpers import unit_vector

runner = CliRunner()

_ARGS = ["ingest", "--bucket", "photos", "--path", "uploads/dog.jpg", "--content-type", "image/jpeg"]


@pytest.fixture
def remote(monkeypatch: pytest.MonkeyPatch) -> tuple[AsyncMock, AsyncMock]:
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "test-project")
    describe = AsyncMock(return_value=Description("Dog on a beach", "A golden retriever."))
    embed = AsyncMock(return_value=unit_vector((0, 1.0)))
    monkeypatch.setattr(DescriptionClient, "describe", describe)
    monkeypatch.setattr(EmbeddingClient, "embed", embed)
    return describe, embed


def test_ingest_without_project_exits_1() -> None:
    result = runner.invoke(app, _ARGS)
    assert result.exit_code == 1
    assert "No Google Cloud project" in result.output


def test_ingest_stores_record(tmp_path: Path, remote) -> None:
    result = runner.invoke(app, _ARGS)

    assert result.exit_code == 0, result.output
    assert "Stored" in result.output
    assert "dog.jpg" in result.output

    conn = Database(tmp_path / ".glimpse.db").connect()
    record = asyncio.run(SqliteKeywordIndex(conn).get("dog.jpg"))
    conn.close()
    assert record.title == "Dog on a beach"
    assert record.keywords == {"golden", "retriever"}


def test_ingest_non_image_is_skipped(remote) -> None:
    describe, _ = remote
    result = runner.invoke(
        app, ["ingest", "-b", "photos", "-p", "notes.txt", "-t", "text/plain"]
    )
    assert result.exit_code == 0
    assert "Skipped" in result.output
    describe.assert_not_awaited()


def test_ingest_failure_exits_1(remote) -> None:
    _, embed = remote
    embed.side_effect = RemoteCallError("quota exceeded", status_code=429)

    result = runner.invoke(app, _ARGS)

    assert result.exit_code == 1
    assert "Failed" in result.output


def test_ingest_honours_db_flag(tmp_path: Path, remote) -> None:
    target = tmp_path / "custom" / "index.db"
    result = runner.invoke(app, [*_ARGS, "--db", str(target)])
    assert result.exit_code == 0, result.output
    assert target.exists()


def test_ingest_closes_services_when_connect_fails() -> None:
    services = MagicMock()
    services.connect.side_effect = RuntimeError("disk full")
    services.aclose = AsyncMock()

    with pytest.raises(RuntimeError, match="disk full"):
        asyncio.run(_ingest(services, UploadEvent("photos", "dog.jpg", "image/jpeg")))
    services.aclose.assert_awaited_once()

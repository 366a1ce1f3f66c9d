"""CLI fixtures: isolate every command from the user's config and env."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path

import pytest

from glimpse.db.connection import Database
from glimpse.db.keyword_index import SqliteKeywordIndex
from glimpse.db.schema import initialize
from glimpse.db.vector_index import SqliteVectorIndex
from helpers import DIMS, make_record, unit_vector

_ENV_VARS = (
    "GOOGLE_CLOUD_PROJECT",
    "GCLOUD_PROJECT",
    "GLIMPSE_DESCRIPTION_MODEL",
    "GLIMPSE_EMBEDDING_MODEL",
    "GLIMPSE_DB_PATH",
    "GLIMPSE_GCP_PROJECT",
    "GLIMPSE_GCP_LOCATION",
    "GLIMPSE_EMULATOR",
    "GLIMPSE_STORAGE_BUCKET",
    "GLIMPSE_GENERATION_MODEL",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in tmp_path with no global config and no Glimpse/GCP env vars."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("glimpse.config._GLOBAL_CONFIG_PATH", tmp_path / "home" / "config.yaml")
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return tmp_path


@pytest.fixture
def seeded_db(tmp_path: Path) -> Path:
    """Index database holding two images in both indexes."""
    db_path = tmp_path / ".glimpse.db"
    conn = Database(db_path).connect()
    initialize(conn)
    lock = threading.Lock()
    keywords = SqliteKeywordIndex(conn, lock)
    vectors = SqliteVectorIndex(conn, DIMS, lock)

    async def _seed() -> None:
        for i, record in enumerate(
            [
                make_record("dog.jpg", "a golden retriever on a beach", "Dog",
                            uploaded_at="2026-01-01T00:00:00+00:00"),
                make_record("bike.jpg", "a red bicycle against a wall", "Bike",
                            uploaded_at="2026-01-02T00:00:00+00:00"),
            ]
        ):
            await keywords.upsert(record)
            await vectors.upsert(record.id, unit_vector((i, 1.0)), record.vector_metadata())

    asyncio.run(_seed())
    conn.close()
    return db_path

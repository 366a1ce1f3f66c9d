"""Tests for database schema initialization."""

from __future__ import annotations

import sqlite3

import pytest

from glimpse.db.schema import CURRENT_VERSION, initialize


def _table_columns(conn, table: str) -> set[str]:
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return {row["name"] for row in rows}


def _table_exists(conn, table: str) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)
    ).fetchone()
    return row is not None


def test_images_columns(tmp_db):
    cols = _table_columns(tmp_db, "images")
    assert cols == {"id", "path", "source_uri", "public_url", "title", "description", "uploaded_at"}


def test_image_keywords_columns(tmp_db):
    assert _table_columns(tmp_db, "image_keywords") == {"image_id", "keyword"}


def test_vector_metadata_columns(tmp_db):
    cols = _table_columns(tmp_db, "vector_metadata")
    assert cols == {"image_id", "title", "description", "public_url", "uploaded_at"}


def test_schema_version_recorded(tmp_db):
    assert _table_exists(tmp_db, "schema_version")
    version = tmp_db.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    assert version == CURRENT_VERSION


def test_initialize_idempotent(tmp_db):
    initialize(tmp_db)
    rows = tmp_db.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    assert rows == 1


def test_keyword_pair_is_unique(tmp_db):
    tmp_db.execute(
        "INSERT INTO images (id, path, source_uri, public_url, title, description, uploaded_at) "
        "VALUES ('a.jpg', 'a.jpg', 'gs://b/a.jpg', 'u', 't', 'd', '2026-01-01')"
    )
    tmp_db.execute("INSERT INTO image_keywords (image_id, keyword) VALUES ('a.jpg', 'dog')")
    with pytest.raises(sqlite3.IntegrityError):
        tmp_db.execute("INSERT INTO image_keywords (image_id, keyword) VALUES ('a.jpg', 'dog')")


def test_keyword_requires_existing_image(tmp_db):
    with pytest.raises(sqlite3.IntegrityError):
        tmp_db.execute("INSERT INTO image_keywords (image_id, keyword) VALUES ('ghost.jpg', 'dog')")

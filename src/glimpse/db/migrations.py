"""Forward-only migration runner for the Glimpse index schema.

Vec tables (vec_images_*) are NOT migration-managed; use ensure_vec_table().
"""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS images (
    id              TEXT PRIMARY KEY,
    path            TEXT NOT NULL,
    source_uri      TEXT NOT NULL,
    public_url      TEXT NOT NULL,
    title           TEXT NOT NULL,
    description     TEXT NOT NULL,
    uploaded_at     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_images_uploaded_at ON images(uploaded_at);

CREATE TABLE IF NOT EXISTS image_keywords (
    image_id        TEXT NOT NULL REFERENCES images(id) ON DELETE CASCADE,
    keyword         TEXT NOT NULL,
    PRIMARY KEY (image_id, keyword)
);

CREATE INDEX IF NOT EXISTS idx_image_keywords_keyword ON image_keywords(keyword);

CREATE TABLE IF NOT EXISTS vector_metadata (
    image_id        TEXT PRIMARY KEY,
    title           TEXT NOT NULL,
    description     TEXT NOT NULL,
    public_url      TEXT NOT NULL,
    uploaded_at     TEXT NOT NULL
);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    Vec tables are NOT managed here; use ensure_vec_table() instead.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()

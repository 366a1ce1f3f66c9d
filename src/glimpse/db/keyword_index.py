"""SQLite keyword index: one row per image plus one row per (image, keyword)."""

from __future__ import annotations

import sqlite3
import threading

from glimpse.db.connection import run_locked
from glimpse.db.models import ImageRecord

_RECORD_COLUMNS = "id, path, source_uri, public_url, title, description, uploaded_at"


class SqliteKeywordIndex:
    """Document store supporting keyword-overlap and recency queries.

    The connection is owned by the caller and must be closed after use.
    Queries run on worker threads under *lock*; pass the same lock to every
    index sharing the connection.
    """

    def __init__(
        self, conn: sqlite3.Connection, lock: threading.Lock | None = None
    ) -> None:
        """Initialise with an open, schema-initialised connection."""
        self._conn = conn
        self._lock = lock or threading.Lock()

    async def upsert(self, record: ImageRecord) -> None:
        """Insert or overwrite *record* and replace its keyword rows."""
        await run_locked(self._lock, self._upsert, record)

    async def query_by_keyword_overlap(
        self, keywords: list[str], limit: int
    ) -> list[ImageRecord]:
        """Records sharing at least one of *keywords*, newest first, then by id."""
        if not keywords or limit < 1:
            return []
        return await run_locked(self._lock, self._query_by_keyword_overlap, keywords, limit)

    async def query_recent(self, limit: int) -> list[ImageRecord]:
        if limit < 1:
            return []
        return await run_locked(self._lock, self._query_recent, limit)

    async def get(self, image_id: str) -> ImageRecord | None:
        return await run_locked(self._lock, self._get, image_id)

    async def count(self) -> int:
        return await run_locked(self._lock, self._count)

    # ------------------------------------------------------------------
    # Blocking queries (worker thread)
    # ------------------------------------------------------------------

    def _upsert(self, record: ImageRecord) -> None:
        with self._conn:
            self._conn.execute(
                f"""
                INSERT INTO images ({_RECORD_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    path = excluded.path,
                    source_uri = excluded.source_uri,
                    public_url = excluded.public_url,
                    title = excluded.title,
                    description = excluded.description,
                    uploaded_at = excluded.uploaded_at
                """,
                (
                    record.id,
                    record.path,
                    record.source_uri,
                    record.public_url,
                    record.title,
                    record.description,
                    record.uploaded_at,
                ),
            )
            self._conn.execute(
                "DELETE FROM image_keywords WHERE image_id = ?", (record.id,)
            )
            self._conn.executemany(
                "INSERT INTO image_keywords (image_id, keyword) VALUES (?, ?)",
                [(record.id, kw) for kw in sorted(record.keywords)],
            )

    def _query_by_keyword_overlap(self, keywords: list[str], limit: int) -> list[ImageRecord]:
        placeholders = ",".join("?" * len(keywords))
        rows = self._conn.execute(
            f"""
            SELECT {_RECORD_COLUMNS} FROM images
            WHERE id IN (
                SELECT image_id FROM image_keywords WHERE keyword IN ({placeholders})
            )
            ORDER BY uploaded_at DESC, id
            LIMIT ?
            """,  # noqa: S608
            (*keywords, limit),
        ).fetchall()
        return self._hydrate(rows)

    def _query_recent(self, limit: int) -> list[ImageRecord]:
        rows = self._conn.execute(
            f"SELECT {_RECORD_COLUMNS} FROM images ORDER BY uploaded_at DESC, id LIMIT ?",
            (limit,),
        ).fetchall()
        return self._hydrate(rows)

    def _get(self, image_id: str) -> ImageRecord | None:
        row = self._conn.execute(
            f"SELECT {_RECORD_COLUMNS} FROM images WHERE id = ?", (image_id,)
        ).fetchone()
        if row is None:
            return None
        return self._hydrate([row])[0]

    def _count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM images").fetchone()[0]

    # ------------------------------------------------------------------
    # Row → model helpers
    # ------------------------------------------------------------------

    def _hydrate(self, rows: list[sqlite3.Row]) -> list[ImageRecord]:
        """Attach keyword sets to image rows in one extra query."""
        if not rows:
            return []
        ids = [r["id"] for r in rows]
        placeholders = ",".join("?" * len(ids))
        keywords: dict[str, set[str]] = {i: set() for i in ids}
        for kw_row in self._conn.execute(
            f"SELECT image_id, keyword FROM image_keywords WHERE image_id IN ({placeholders})",  # noqa: S608
            ids,
        ):
            keywords[kw_row["image_id"]].add(kw_row["keyword"])
        return [_row_to_record(r, frozenset(keywords[r["id"]])) for r in rows]


def _row_to_record(row: sqlite3.Row, keywords: frozenset[str]) -> ImageRecord:
    return ImageRecord(
        id=row["id"],
        path=row["path"],
        source_uri=row["source_uri"],
        public_url=row["public_url"],
        title=row["title"],
        description=row["description"],
        uploaded_at=row["uploaded_at"],
        keywords=keywords,
    )

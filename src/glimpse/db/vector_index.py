"""sqlite-vec vector index with a side table for per-vector metadata."""

from __future__ import annotations

import json
import sqlite3
import threading

from glimpse.db.connection import run_locked
from glimpse.db.models import VectorMatch
from glimpse.db.vectors import ensure_vec_table


class SqliteVectorIndex:
    """Nearest-neighbour store over a cosine-distance vec0 table.

    Scores are reported as similarities (``1 - cosine distance``) so that
    higher means closer, matching hosted vector databases. Queries run on
    worker threads under *lock*, shared with any other index on the connection.
    """

    def __init__(
        self, conn: sqlite3.Connection, dimension: int, lock: threading.Lock | None = None
    ) -> None:
        self._conn = conn
        self._lock = lock or threading.Lock()
        self.dimension = dimension
        self._table = ensure_vec_table(conn, dimension)

    @property
    def table(self) -> str:
        return self._table

    async def upsert(
        self, image_id: str, vector: list[float], metadata: dict[str, str]
    ) -> None:
        """Replace the vector and metadata stored under *image_id*.

        vec0 tables have no ON CONFLICT clause, so the old row is deleted first
        inside the same transaction.
        """
        if len(vector) != self.dimension:
            raise ValueError(
                f"vector has {len(vector)} dimensions, index expects {self.dimension}"
            )
        await run_locked(self._lock, self._upsert, image_id, vector, metadata)

    async def query_nearest(
        self, vector: list[float], top_k: int, include_metadata: bool = True
    ) -> list[VectorMatch]:
        """KNN search. Returns matches sorted by similarity, best first."""
        if top_k < 1:
            return []
        return await run_locked(
            self._lock, self._query_nearest, vector, top_k, include_metadata
        )

    async def count(self) -> int:
        return await run_locked(self._lock, self._count)

    # ------------------------------------------------------------------
    # Blocking queries (worker thread)
    # ------------------------------------------------------------------

    def _upsert(self, image_id: str, vector: list[float], metadata: dict[str, str]) -> None:
        with self._conn:
            self._conn.execute(
                f"DELETE FROM {self._table} WHERE image_id = ?", (image_id,)
            )
            self._conn.execute(
                f"INSERT INTO {self._table}(image_id, embedding) VALUES (?, ?)",
                (image_id, json.dumps(vector)),
            )
            self._conn.execute(
                """
                INSERT INTO vector_metadata (image_id, title, description, public_url, uploaded_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(image_id) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    public_url = excluded.public_url,
                    uploaded_at = excluded.uploaded_at
                """,
                (
                    image_id,
                    metadata.get("title", ""),
                    metadata.get("description", ""),
                    metadata.get("public_url", ""),
                    metadata.get("uploaded_at", ""),
                ),
            )

    def _query_nearest(
        self, vector: list[float], top_k: int, include_metadata: bool
    ) -> list[VectorMatch]:
        rows = self._conn.execute(
            f"""
            SELECT image_id, distance FROM {self._table}
            WHERE embedding MATCH ? AND k = ?
            ORDER BY distance
            """,
            (json.dumps(vector), top_k),
        ).fetchall()

        matches: list[VectorMatch] = []
        for row in rows:
            metadata = self._metadata(row["image_id"]) if include_metadata else {}
            matches.append(
                VectorMatch(id=row["image_id"], score=1.0 - row["distance"], metadata=metadata)
            )
        return matches

    def _count(self) -> int:
        return self._conn.execute(f"SELECT COUNT(*) FROM {self._table}").fetchone()[0]

    def _metadata(self, image_id: str) -> dict[str, str]:
        row = self._conn.execute(
            "SELECT title, description, public_url, uploaded_at FROM vector_metadata WHERE image_id = ?",
            (image_id,),
        ).fetchone()
        return dict(row) if row else {}

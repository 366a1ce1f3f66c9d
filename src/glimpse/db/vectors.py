"""Per-dimension sqlite-vec virtual table management."""

from __future__ import annotations

import sqlite3

# Output sizes accepted by the multimodal embedding service.
SUPPORTED_DIMENSIONS: frozenset[int] = frozenset({128, 256, 512, 1408})


def vec_table_name(dimension: int) -> str:
    """Return the vec table name for *dimension* (e.g. ``vec_images_1408``)."""
    return f"vec_images_{dimension}"


def ensure_vec_table(conn: sqlite3.Connection, dimension: int) -> str:
    """Create the vec0 table for *dimension* if it doesn't already exist.

    Rows are keyed by the text image id and compared by cosine distance.

    Args:
        conn: Active database connection (sqlite-vec must be loaded).
        dimension: Embedding vector length (one of SUPPORTED_DIMENSIONS).

    Returns:
        The table name (vec_images_{dimension}).
    """
    if dimension not in SUPPORTED_DIMENSIONS:
        raise ValueError(
            f"dimension must be one of {sorted(SUPPORTED_DIMENSIONS)}, got {dimension}"
        )

    table = vec_table_name(dimension)
    existing = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)
    ).fetchone()

    if existing is None:
        conn.execute(
            f"CREATE VIRTUAL TABLE {table} USING vec0("
            f"image_id TEXT PRIMARY KEY, "
            f"embedding float[{dimension}] distance_metric=cosine)"
        )
        conn.commit()

    return table

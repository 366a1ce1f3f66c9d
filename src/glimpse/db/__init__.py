"""Glimpse index layer: SQLite keyword index and sqlite-vec vector index."""

from glimpse.db.connection import Database
from glimpse.db.keyword_index import SqliteKeywordIndex
from glimpse.db.migrations import MIGRATIONS, run_migrations
from glimpse.db.schema import initialize
from glimpse.db.vector_index import SqliteVectorIndex
from glimpse.db.vectors import SUPPORTED_DIMENSIONS, ensure_vec_table, vec_table_name

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "SqliteKeywordIndex",
    "SqliteVectorIndex",
    "SUPPORTED_DIMENSIONS",
    "ensure_vec_table",
    "vec_table_name",
]

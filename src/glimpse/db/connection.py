"""SQLite connection layer with the sqlite-vec extension loaded."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import sqlite_vec

T = TypeVar("T")


class Database:
    """Local SQLite file backing both the keyword index and the vector index."""

    def __init__(self, db_path: Path | str) -> None:
        """Store the database path. Call connect() to open the connection.

        Args:
            db_path: Path to the SQLite database file (created if missing).
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open a connection, load sqlite-vec, and return the connection.

        Index queries run on worker threads (see run_locked), so same-thread
        checking is disabled.
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.enable_load_extension(True)
        sqlite_vec.load(conn)
        conn.enable_load_extension(False)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def __enter__(self) -> sqlite3.Connection:
        """Open the database and return the connection (context manager support)."""
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        """Close the connection when leaving the context manager."""
        if self._conn:
            self._conn.close()
            self._conn = None


async def run_locked(lock: threading.Lock, fn: Callable[..., T], *args: object) -> T:
    """Run a blocking connection call on a worker thread, one call at a time.

    sqlite3 connections are not safe for concurrent use, so every index that
    shares a connection must also share *lock*.
    """

    def _call() -> T:
        with lock:
            return fn(*args)

    return await asyncio.to_thread(_call)

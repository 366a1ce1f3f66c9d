"""Shared pytest fixtures."""

from __future__ import annotations

import logging
import threading

import pytest

from glimpse.db.connection import Database
from glimpse.db.keyword_index import SqliteKeywordIndex
from glimpse.db.schema import initialize
from glimpse.db.vector_index import SqliteVectorIndex
from helpers import DIMS


@pytest.fixture(autouse=True)
def _reset_glimpse_logger():
    """Undo configure_logging() so caplog sees records in every test."""
    yield
    logger = logging.getLogger("glimpse")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".glimpse.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def db_lock():
    """Lock shared by every index on tmp_db."""
    return threading.Lock()


@pytest.fixture
def keyword_index(tmp_db, db_lock):
    return SqliteKeywordIndex(tmp_db, db_lock)


@pytest.fixture
def vector_index(tmp_db, db_lock):
    return SqliteVectorIndex(tmp_db, DIMS, db_lock)

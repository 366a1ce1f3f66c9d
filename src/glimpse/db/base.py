"""Index interfaces consumed by the ingestion pipeline and the rankers.

Any document store supporting keyword-overlap queries can stand in for
KeywordIndex, and any nearest-neighbour store for VectorIndex. The SQLite
implementations in this package are the defaults.
"""

from __future__ import annotations

from typing import Protocol

from glimpse.db.models import ImageRecord, VectorMatch


class KeywordIndex(Protocol):
    async def upsert(self, record: ImageRecord) -> None:
        """Insert *record*, replacing any record with the same id."""

    async def query_by_keyword_overlap(
        self, keywords: list[str], limit: int
    ) -> list[ImageRecord]:
        """Return up to *limit* records sharing at least one keyword."""

    async def query_recent(self, limit: int) -> list[ImageRecord]:
        """Return the *limit* most recently uploaded records, newest first."""

    async def get(self, image_id: str) -> ImageRecord | None: ...

    async def count(self) -> int: ...


class VectorIndex(Protocol):
    async def upsert(
        self, image_id: str, vector: list[float], metadata: dict[str, str]
    ) -> None:
        """Insert the vector for *image_id*, replacing any previous one."""

    async def query_nearest(
        self, vector: list[float], top_k: int, include_metadata: bool = True
    ) -> list[VectorMatch]:
        """Return up to *top_k* matches, most similar first."""

    async def count(self) -> int: ...

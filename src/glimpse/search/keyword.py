"""Keyword search: overlap scoring over the keyword index.

score(record) = |query_keywords ∩ record.keywords|

An empty query switches to browse mode and returns the most recent uploads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from glimpse.db.base import KeywordIndex
from glimpse.db.models import ImageRecord
from glimpse.ingest.keywords import ordered_keywords

logger = logging.getLogger(__name__)

# Limit of the underlying overlap query (array-contains-any style lookups).
MAX_QUERY_KEYWORDS = 10
OVERFETCH_FACTOR = 5


@dataclass(frozen=True)
class KeywordHit:
    id: str
    display_url: str
    title: str


@dataclass
class _Scored:
    record: ImageRecord
    score: int


class KeywordSearchRanker:
    """Rank keyword-index records by the number of query keywords they contain.

    Args:
        index: Keyword index to query.
        max_query_keywords: Query keywords beyond this count are dropped.
        overfetch_factor: Candidates fetched per requested result.
    """

    def __init__(
        self,
        index: KeywordIndex,
        max_query_keywords: int = MAX_QUERY_KEYWORDS,
        overfetch_factor: int = OVERFETCH_FACTOR,
    ) -> None:
        self._index = index
        self._max_keywords = max_query_keywords
        self._overfetch = overfetch_factor

    async def search(self, query: str | None, top_k: int) -> list[KeywordHit]:
        """Return at most *top_k* hits, best first.

        Equal scores keep the index order (newest upload first, then id).
        """
        if top_k < 1:
            return []
        if not query or not query.strip():
            recent = await self._index.query_recent(top_k)
            return [_to_hit(r) for r in recent]

        keywords = self.query_keywords(query)
        if not keywords:
            return []

        candidates = await self._index.query_by_keyword_overlap(
            keywords, limit=top_k * self._overfetch
        )
        scored = [_Scored(c, score_overlap(keywords, c.keywords)) for c in candidates]
        scored = [s for s in scored if s.score > 0]
        scored.sort(key=lambda s: s.score, reverse=True)
        return [_to_hit(s.record) for s in scored[:top_k]]

    def query_keywords(self, query: str) -> list[str]:
        """Normalised query keywords, capped at ``max_query_keywords``."""
        keywords = ordered_keywords(query)
        if len(keywords) > self._max_keywords:
            logger.warning(
                "Query has %d keywords; only the first %d are used",
                len(keywords),
                self._max_keywords,
            )
            keywords = keywords[: self._max_keywords]
        return keywords


def score_overlap(query_keywords: list[str], record_keywords: frozenset[str]) -> int:
    """Number of query keywords present in the record's keyword set."""
    return sum(1 for k in query_keywords if k in record_keywords)


def _to_hit(record: ImageRecord) -> KeywordHit:
    return KeywordHit(id=record.id, display_url=record.public_url, title=record.title)

"""Semantic search: embed the query text and filter nearest neighbours."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from glimpse.db.base import VectorIndex
from glimpse.errors import MissingQueryError
from glimpse.remote.embedder import EmbeddingClient

logger = logging.getLogger(__name__)

# Unrelated content still scores slightly above zero under cosine similarity.
SCORE_THRESHOLD = 0.05


@dataclass(frozen=True)
class SemanticHit:
    id: str
    score: float
    title: str
    display_url: str


class SemanticSearchRanker:
    """Query the vector index with a text embedding and drop low-similarity matches.

    Results keep the index's own ordering; nothing is re-sorted.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        index: VectorIndex,
        score_threshold: float = SCORE_THRESHOLD,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self._threshold = score_threshold

    async def search(self, query_text: str | None, top_k: int) -> list[SemanticHit]:
        """Return up to *top_k* matches scoring above the threshold.

        Raises:
            MissingQueryError: If *query_text* is empty.
        """
        if not query_text or not query_text.strip():
            raise MissingQueryError("Missing search query")
        if top_k < 1:
            return []

        logger.info("Generating multimodal embedding for: %r", query_text)
        embedding = await self._embedder.embed(text=query_text)
        matches = await self._index.query_nearest(embedding, top_k, include_metadata=True)

        hits = [
            SemanticHit(
                id=m.id,
                score=m.score,
                title=m.metadata.get("title", ""),
                display_url=m.metadata.get("public_url", ""),
            )
            for m in matches
            if m.score > self._threshold
        ]
        logger.debug("%d of %d matches above %.2f", len(hits), len(matches), self._threshold)
        return hits

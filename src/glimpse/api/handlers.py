"""Transport-agnostic request handlers.

Each handler returns ``(status_code, payload)``. Unexpected failures are
logged with full detail and answered with a generic message only.
"""

from __future__ import annotations

import logging

from glimpse.errors import ConfigError, GenerationError, MissingPromptError, MissingQueryError
from glimpse.ingest.events import UploadEvent
from glimpse.ingest.pipeline import IngestResult, IngestStatus
from glimpse.services import Services

logger = logging.getLogger(__name__)

Response = tuple[int, dict]


def parse_limit(raw: object, default: int = 5, maximum: int = 100) -> int:
    """Parse a client-supplied limit; invalid or non-positive values give *default*."""
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    if value < 1:
        return default
    return min(value, maximum)


async def search(services: Services, query: str | None, limit: object = None) -> Response:
    """Keyword search; an empty query browses the most recent uploads."""
    cfg = services.config.search
    top_k = parse_limit(limit, cfg.default_limit, cfg.max_limit)
    try:
        hits = await services.keyword_ranker().search(query, top_k)
    except Exception:
        logger.exception("Search error for query %r", query)
        return 500, {"error": "Search failed."}
    return 200, {
        "results": [{"id": h.id, "imageUrl": h.display_url, "title": h.title} for h in hits]
    }


async def semantic_search(services: Services, query: str | None, limit: object = None) -> Response:
    """Vector search; the query is required."""
    cfg = services.config.search
    top_k = parse_limit(limit, cfg.default_limit, cfg.max_limit)
    try:
        hits = await services.semantic_ranker().search(query, top_k)
    except MissingQueryError:
        return 400, {"error": "Missing search query"}
    except Exception:
        logger.exception("Semantic search error for query %r", query)
        return 500, {"error": "Semantic search failed"}
    return 200, {
        "results": [
            {"id": h.id, "score": h.score, "title": h.title, "imageUrl": h.display_url}
            for h in hits
        ]
    }


async def ingest_event(services: Services, event: UploadEvent) -> IngestResult:
    """Run the ingestion pipeline for one upload notification. Never raises."""
    try:
        pipeline = services.pipeline()
    except ConfigError as exc:
        logger.error("Cannot ingest %r: %s", event.path, exc)
        return IngestResult(IngestStatus.FAILED, error=exc)
    return await pipeline.ingest(event)


async def generate(services: Services, prompt: str | None, count: object = None) -> Response:
    """Generate images for *prompt*, store them and index them.

    *count* falls back to 1 and is capped at generation.max_count.
    Generation failures carry client-safe messages and are returned verbatim.
    """
    n = parse_limit(count, 1, services.config.generation.max_count)
    try:
        result = await services.generation().generate(prompt, n)
    except MissingPromptError as exc:
        return 400, {"error": str(exc)}
    except ConfigError as exc:
        logger.error("Image generation unavailable: %s", exc)
        return 500, {"error": "Image generation is not configured."}
    except GenerationError as exc:
        logger.error("Image generation failed for prompt %r: %s", prompt, exc)
        return 500, {"error": str(exc)}
    except Exception:
        logger.exception("Image generation error for prompt %r", prompt)
        return 500, {"error": "Image generation failed."}
    return 200, {"prompt": result.prompt, "count": result.count, "imageUrls": result.image_urls}

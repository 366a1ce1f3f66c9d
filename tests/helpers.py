"""Test helpers shared across test modules."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from glimpse.db.models import ImageRecord
from glimpse.ingest.keywords import extract_keywords
from glimpse.remote.describer import Description
from glimpse.remote.generator import GeneratedImage
from glimpse.remote.storage import StoredObject

DIMS = 1408


def unit_vector(*weights: tuple[int, float], dims: int = DIMS) -> list[float]:
    """Vector with the given (index, weight) components and zeros elsewhere."""
    vec = [0.0] * dims
    for i, w in weights:
        vec[i] = w
    return vec


def make_record(
    id: str = "dog.jpg",
    description: str = "a golden retriever on a beach",
    title: str = "Dog on a beach",
    uploaded_at: str = "2026-01-01T00:00:00+00:00",
    bucket: str = "photos",
) -> ImageRecord:
    return ImageRecord(
        id=id,
        path=f"uploads/{id}",
        source_uri=f"gs://{bucket}/uploads/{id}",
        public_url=f"https://example.test/{bucket}/{id}",
        title=title,
        description=description,
        uploaded_at=uploaded_at,
        keywords=extract_keywords(description),
    )


def fake_embedder(vector: list[float] | None = None) -> MagicMock:
    """Embedding client double returning *vector* for every call."""
    embedder = MagicMock()
    embedder.embed = AsyncMock(return_value=vector or unit_vector((0, 1.0)))
    embedder.aclose = AsyncMock()
    return embedder


def fake_describer(title: str = "Dog on a beach", description: str = "A golden retriever.") -> MagicMock:
    """Description client double returning a fixed Description."""
    describer = MagicMock()
    describer.describe = AsyncMock(return_value=Description(title, description))
    return describer


def fake_generator(*images: bytes) -> MagicMock:
    """Image generation client double returning one PNG per *images* entry."""
    generator = MagicMock()
    generator.generate = AsyncMock(
        return_value=[GeneratedImage(data) for data in images or (b"png",)]
    )
    generator.aclose = AsyncMock()
    return generator


def fake_store(bucket: str = "photos") -> MagicMock:
    """Object store double echoing each put() back as a StoredObject."""

    async def _put(path, data, content_type, metadata):
        return StoredObject(bucket=bucket, path=path, public_url=f"https://example.test/{bucket}/{path}")

    store = MagicMock()
    store.put = AsyncMock(side_effect=_put)
    return store

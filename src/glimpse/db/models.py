"""Domain models for the Glimpse index layer."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ImageRecord:
    id: str
    path: str
    source_uri: str
    public_url: str
    title: str
    description: str
    uploaded_at: str
    keywords: frozenset[str] = field(default_factory=frozenset)
    embedding: list[float] = field(default_factory=list)

    def vector_metadata(self) -> dict[str, str]:
        """Metadata stored next to the embedding in the vector index."""
        return {
            "title": self.title,
            "description": self.description,
            "public_url": self.public_url,
            "uploaded_at": self.uploaded_at,
        }


@dataclass
class VectorMatch:
    id: str
    score: float  # similarity, higher = closer
    metadata: dict[str, str] = field(default_factory=dict)

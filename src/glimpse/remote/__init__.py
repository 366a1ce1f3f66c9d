"""Clients for the remote description, embedding, generation and storage services."""

from glimpse.remote.describer import Description, DescriptionClient
from glimpse.remote.embedder import EmbeddingClient
from glimpse.remote.generator import ImageGenerationClient
from glimpse.remote.retry import RetryPolicy, is_rate_limited
from glimpse.remote.storage import GcsObjectStore, ObjectStore, StoredObject

__all__ = [
    "Description",
    "DescriptionClient",
    "EmbeddingClient",
    "GcsObjectStore",
    "ImageGenerationClient",
    "ObjectStore",
    "RetryPolicy",
    "StoredObject",
    "is_rate_limited",
]

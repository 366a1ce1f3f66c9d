"""Glimpse exception hierarchy.

Ingestion errors are caught at the pipeline boundary and turned into a FAILED
result. Search errors are caught by the request handlers and mapped to a
client-facing status code (400 for MissingQueryError, 500 otherwise).
"""

from __future__ import annotations


class GlimpseError(Exception):
    """Base class for all Glimpse errors."""


class ConfigError(GlimpseError, ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


class ValidationError(GlimpseError):
    """Upload event is not an ingestible image (missing path or non-image type).

    Not a failure: the pipeline skips the event quietly.
    """


class RemoteCallError(GlimpseError):
    """A call to a remote model service failed.

    Attributes:
        status_code: HTTP-style status reported by the remote service, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def rate_limited(self) -> bool:
        """True when the service signalled quota or throughput exhaustion."""
        return self.status_code == 429


# ------------------------------------------------------------------
# Description
# ------------------------------------------------------------------


class DescriptionError(GlimpseError):
    """Base class for description failures."""


class NoContentError(DescriptionError):
    """The generative model returned no text at all."""


class MissingDescriptionError(DescriptionError):
    """The description is empty after parsing (or after the raw-text fallback)."""


# ------------------------------------------------------------------
# Embedding
# ------------------------------------------------------------------


class EmbeddingError(GlimpseError):
    """Base class for embedding failures."""


class InvalidEmbeddingInputError(EmbeddingError):
    """Neither text nor an image reference was supplied."""


class EmptyPredictionError(EmbeddingError):
    """The embedding service returned zero predictions."""


class NoEmbeddingFoundError(EmbeddingError):
    """The prediction holds neither a text nor an image embedding."""


class EmbeddingDimensionError(EmbeddingError):
    """The returned vector length differs from the configured dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected a {expected}-dimensional embedding, got {actual}.")
        self.expected = expected
        self.actual = actual


# ------------------------------------------------------------------
# Search
# ------------------------------------------------------------------


class MissingQueryError(GlimpseError):
    """Semantic search was called without a query."""


# ------------------------------------------------------------------
# Generation
# ------------------------------------------------------------------


class GenerationError(GlimpseError):
    """Base class for image generation failures.

    Messages are written for the client and are returned as-is by the
    generate handler.
    """


class MissingPromptError(GenerationError):
    """Image generation was called without a prompt."""


class NoCandidatesError(GenerationError):
    """The generative model returned no candidates at all."""


class TextInsteadOfImageError(GenerationError):
    """A candidate carried text (usually a refusal) where an image was expected."""

    def __init__(self, text: str) -> None:
        super().__init__(f'Image generation failed. API responded with: "{text}"')
        self.text = text


class NoImagesGeneratedError(GenerationError):
    """Every candidate was blocked or empty."""

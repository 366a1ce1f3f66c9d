"""Generate images from a prompt, store them, and feed them to ingestion.

Each generated image is written to the upload bucket as

    {prefix}{epoch_ms}-{slug}-{index}.png

with the prompt kept in the object metadata (``generatedFromPrompt``). When a
pipeline is given, every stored image is ingested exactly as if the storage
notifier had reported its upload. Ingestion failures are logged but do not
fail the generation: the images are already stored.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from glimpse.errors import MissingPromptError
from glimpse.ingest.events import UploadEvent
from glimpse.ingest.pipeline import IngestionPipeline, IngestResult, IngestStatus
from glimpse.remote.generator import ImageGenerationClient
from glimpse.remote.storage import ObjectStore

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]")
_SLUG_LENGTH = 30


def prompt_slug(prompt: str) -> str:
    """Lowercase *prompt*, replace every non-alphanumeric with '-', keep 30 chars."""
    return _SLUG_RE.sub("-", prompt.lower())[:_SLUG_LENGTH]


def _epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class GenerationResult:
    prompt: str
    image_urls: list[str] = field(default_factory=list)
    ingested: list[IngestResult] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.image_urls)


class GenerationService:
    """Generate, store and (optionally) index images for a prompt.

    Args:
        generator: Text-to-image client.
        store: Destination for the generated files.
        pipeline: Ingestion pipeline for stored images; None skips indexing.
        prefix: Object path prefix for generated files.
        clock: Returns the millisecond timestamp used in file names.
    """

    def __init__(
        self,
        generator: ImageGenerationClient,
        store: ObjectStore,
        pipeline: IngestionPipeline | None = None,
        prefix: str = "generated/",
        clock: Callable[[], int] = _epoch_ms,
    ) -> None:
        self._generator = generator
        self._store = store
        self._pipeline = pipeline
        self._prefix = prefix
        self._clock = clock

    async def generate(self, prompt: str | None, count: int = 1) -> GenerationResult:
        """Generate *count* images for *prompt*.

        Raises:
            MissingPromptError: *prompt* is empty.
            GenerationError: The model produced no usable image.
            RemoteCallError: The model or the store failed.
        """
        if not prompt or not prompt.strip():
            raise MissingPromptError("Missing 'prompt' in request body")

        images = await self._generator.generate(prompt, count)
        slug = prompt_slug(prompt)
        result = GenerationResult(prompt=prompt)
        for index, image in enumerate(images):
            path = f"{self._prefix}{self._clock()}-{slug}-{index}.png"
            stored = await self._store.put(
                path, image.data, "image/png", {"generatedFromPrompt": prompt}
            )
            result.image_urls.append(stored.public_url)

            if self._pipeline is not None:
                event = UploadEvent(bucket=stored.bucket, path=stored.path, content_type="image/png")
                ingested = await self._pipeline.ingest(event)
                if ingested.status is not IngestStatus.STORED:
                    logger.warning("Generated image %s was not indexed: %s", path, ingested.error)
                result.ingested.append(ingested)
        return result

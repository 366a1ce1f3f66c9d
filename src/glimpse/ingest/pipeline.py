"""Ingestion pipeline: one uploaded image → one record in both indexes.

States, strictly sequential per image:

    Validate → Describe → Embed → IndexWrite(vector) → IndexWrite(keyword) → Done

Any failure ends the attempt. There is no cross-index transaction: if the
keyword write fails after the vector write succeeded, the vector index holds
the new record while the keyword index is stale until the next ingestion of
the same path.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from glimpse.config import DEFAULT_PUBLIC_URL_TEMPLATE
from glimpse.db.base import KeywordIndex, VectorIndex
from glimpse.db.models import ImageRecord
from glimpse.errors import ValidationError
from glimpse.ingest.events import UploadEvent, image_id, public_url, source_uri
from glimpse.ingest.keywords import extract_keywords
from glimpse.remote.describer import DescriptionClient
from glimpse.remote.embedder import EmbeddingClient

logger = logging.getLogger(__name__)


class IngestStatus(enum.Enum):
    STORED = "stored"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class IngestResult:
    status: IngestStatus
    record: ImageRecord | None = None
    error: Exception | None = None


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class IngestionPipeline:
    """Describe, embed and index a single uploaded image.

    Args:
        describer: Client producing title + description.
        embedder: Client producing the image embedding.
        keyword_index: Document store receiving the full record.
        vector_index: Nearest-neighbour store receiving the embedding.
        public_url_template: Template for display URLs (see events.public_url).
        clock: Returns the ISO-8601 ingestion timestamp.
        source_override: Optional (source_uri, content_type) replacing the
            event's values, used against the local storage emulator.
    """

    def __init__(
        self,
        describer: DescriptionClient,
        embedder: EmbeddingClient,
        keyword_index: KeywordIndex,
        vector_index: VectorIndex,
        public_url_template: str = DEFAULT_PUBLIC_URL_TEMPLATE,
        clock: Callable[[], str] = _utc_now,
        source_override: tuple[str | None, str | None] | None = None,
    ) -> None:
        self._describer = describer
        self._embedder = embedder
        self._keyword_index = keyword_index
        self._vector_index = vector_index
        self._url_template = public_url_template
        self._clock = clock
        self._override = source_override

    async def ingest(self, event: UploadEvent) -> IngestResult:
        """Run the pipeline for *event*. Never raises.

        Returns:
            SKIPPED for non-image or path-less events, FAILED if any step
            raised, STORED with the written record otherwise.
        """
        event = self._apply_override(event)
        try:
            event.validate()
        except ValidationError as exc:
            logger.debug("Skipping upload %r: %s", event.path, exc)
            return IngestResult(IngestStatus.SKIPPED)

        doc_id = image_id(event.path)
        try:
            record = await self._run(event, doc_id)
        except Exception as exc:
            logger.error("Failed to ingest %s (%s)", doc_id, event.path, exc_info=exc)
            return IngestResult(IngestStatus.FAILED, error=exc)

        logger.info("Stored image %s (%d keywords)", record.id, len(record.keywords))
        return IngestResult(IngestStatus.STORED, record=record)

    async def _run(self, event: UploadEvent, doc_id: str) -> ImageRecord:
        uri = self._source_uri(event)

        description = await self._describer.describe(uri, event.content_type)
        embedding = await self._embedder.embed(image_ref=uri)

        record = ImageRecord(
            id=doc_id,
            path=event.path,
            source_uri=uri,
            public_url=public_url(event.bucket, event.path, self._url_template),
            title=description.title,
            description=description.description,
            uploaded_at=self._clock(),
            embedding=embedding,
        )

        await self._vector_index.upsert(record.id, record.embedding, record.vector_metadata())

        record.keywords = extract_keywords(record.description)
        await self._keyword_index.upsert(record)
        return record

    def _source_uri(self, event: UploadEvent) -> str:
        if self._override and self._override[0]:
            return self._override[0]
        return source_uri(event.bucket, event.path)

    def _apply_override(self, event: UploadEvent) -> UploadEvent:
        if not self._override or not self._override[1]:
            return event
        return UploadEvent(bucket=event.bucket, path=event.path, content_type=self._override[1])

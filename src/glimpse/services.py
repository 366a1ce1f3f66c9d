"""Service container: every shared client handle, built once by connect().

Handles are created explicitly at process start (CLI command, HTTP app
lifespan) and passed by reference into the pipeline and the rankers. After
connect() they are only read, so concurrent tasks may share them.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from glimpse.config import GlimpseConfig, emulator_enabled
from glimpse.db.base import KeywordIndex, VectorIndex
from glimpse.db.connection import Database
from glimpse.db.keyword_index import SqliteKeywordIndex
from glimpse.db.schema import initialize
from glimpse.db.vector_index import SqliteVectorIndex
from glimpse.errors import ConfigError
from glimpse.generate.service import GenerationService
from glimpse.ingest.pipeline import IngestionPipeline
from glimpse.remote.describer import DescriptionClient
from glimpse.remote.embedder import EmbeddingClient
from glimpse.remote.generator import ImageGenerationClient
from glimpse.remote.retry import RetryPolicy
from glimpse.remote.storage import GcsObjectStore, ObjectStore
from glimpse.search.keyword import KeywordSearchRanker
from glimpse.search.semantic import SemanticSearchRanker

logger = logging.getLogger(__name__)


class Services:
    """Owns the index connection and the remote clients.

    Any handle passed to the constructor is used as-is; the rest are built
    from *config* by connect().
    """

    def __init__(
        self,
        config: GlimpseConfig,
        *,
        describer: DescriptionClient | None = None,
        embedder: EmbeddingClient | None = None,
        keyword_index: KeywordIndex | None = None,
        vector_index: VectorIndex | None = None,
        generator: ImageGenerationClient | None = None,
        object_store: ObjectStore | None = None,
    ) -> None:
        self.config = config
        self._describer = describer
        self._embedder = embedder
        self._keyword_index = keyword_index
        self._vector_index = vector_index
        self._generator = generator
        self._object_store = object_store
        self._conn: sqlite3.Connection | None = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> Services:
        """Open the index database and build remote clients. Idempotent."""
        if self._connected:
            return self

        if self._keyword_index is None or self._vector_index is None:
            db_path = Path(self.config.storage.db_path)
            self._conn = Database(db_path).connect()
            initialize(self._conn)
            lock = threading.Lock()
            if self._keyword_index is None:
                self._keyword_index = SqliteKeywordIndex(self._conn, lock)
            if self._vector_index is None:
                self._vector_index = SqliteVectorIndex(
                    self._conn, self.config.embedding.dimension, lock
                )
            logger.debug("Opened index database %s", db_path)

        retry = self.retry_policy()
        if self._describer is None:
            self._describer = DescriptionClient(
                model=self.config.description.model,
                retry=retry,
                vertex_project=self.config.gcp.resolved_project(),
                vertex_location=self.config.gcp.location,
                max_tokens=self.config.description.max_tokens,
                temperature=self.config.description.temperature,
            )
        if self._embedder is None and (project := self.config.gcp.resolved_project()):
            self._embedder = EmbeddingClient(
                project=project,
                location=self.config.gcp.location,
                model=self.config.embedding.model,
                dimension=self.config.embedding.dimension,
                retry=retry,
            )
        if self._generator is None and (project := self.config.gcp.resolved_project()):
            self._generator = ImageGenerationClient(
                project=project,
                location=self.config.gcp.location,
                model=self.config.generation.model,
                retry=retry,
            )
        if self._object_store is None and (bucket := self.config.storage.bucket):
            self._object_store = GcsObjectStore(
                bucket,
                project=self.config.gcp.resolved_project(),
                public_url_template=self.config.storage.public_url_template,
            )

        self._connected = True
        return self

    async def aclose(self) -> None:
        """Release the HTTP clients and the database connection."""
        if self._embedder is not None:
            await self._embedder.aclose()
        if self._generator is not None:
            await self._generator.aclose()
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        self._connected = False

    # ------------------------------------------------------------------
    # Handles
    # ------------------------------------------------------------------

    def retry_policy(self) -> RetryPolicy:
        r = self.config.retry
        return RetryPolicy(
            max_attempts=r.max_attempts,
            initial_delay=r.initial_delay,
            max_jitter=r.max_jitter,
        )

    @property
    def keyword_index(self) -> KeywordIndex:
        self._require_connected()
        return self._keyword_index

    @property
    def vector_index(self) -> VectorIndex:
        self._require_connected()
        return self._vector_index

    @property
    def describer(self) -> DescriptionClient:
        self._require_connected()
        return self._describer

    @property
    def embedder(self) -> EmbeddingClient:
        self._require_connected()
        if self._embedder is None:
            raise ConfigError(
                "No GCP project configured for the embedding service.\n"
                "  Set gcp.project in glimpse.yaml or export GOOGLE_CLOUD_PROJECT=<project>"
            )
        return self._embedder

    @property
    def generator(self) -> ImageGenerationClient:
        self._require_connected()
        if self._generator is None:
            raise ConfigError(
                "No GCP project configured for the image generation service.\n"
                "  Set gcp.project in glimpse.yaml or export GOOGLE_CLOUD_PROJECT=<project>"
            )
        return self._generator

    @property
    def object_store(self) -> ObjectStore:
        self._require_connected()
        if self._object_store is None:
            raise ConfigError(
                "No storage bucket configured for generated images.\n"
                "  Set storage.bucket in glimpse.yaml or export GLIMPSE_STORAGE_BUCKET=<bucket>"
            )
        return self._object_store

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def pipeline(self) -> IngestionPipeline:
        override = None
        if emulator_enabled():
            override = (self.config.emulator.source_uri, self.config.emulator.content_type)
        return IngestionPipeline(
            describer=self.describer,
            embedder=self.embedder,
            keyword_index=self.keyword_index,
            vector_index=self.vector_index,
            public_url_template=self.config.storage.public_url_template,
            source_override=override,
        )

    def keyword_ranker(self) -> KeywordSearchRanker:
        return KeywordSearchRanker(
            self.keyword_index,
            max_query_keywords=self.config.search.max_query_keywords,
            overfetch_factor=self.config.search.overfetch_factor,
        )

    def semantic_ranker(self) -> SemanticSearchRanker:
        return SemanticSearchRanker(
            self.embedder,
            self.vector_index,
            score_threshold=self.config.search.score_threshold,
        )

    def generation(self) -> GenerationService:
        cfg = self.config.generation
        return GenerationService(
            generator=self.generator,
            store=self.object_store,
            pipeline=self.pipeline() if cfg.ingest else None,
            prefix=cfg.prefix,
        )

    def _require_connected(self) -> None:
        if not self._connected:
            raise RuntimeError("Services not connected. Call connect() first.")

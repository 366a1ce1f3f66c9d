"""HTTP surface: FastAPI app exposing search, ingestion and image generation.

    GET  /search?q=&limit=           keyword search (empty q = recent uploads)
    GET  /semantic-search?q=&limit=  vector search (q required)
    POST /ingest                     upload notifier webhook
    POST /generate                   text-to-image, results are stored and indexed
    GET  /health                     index counts
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from glimpse.api import handlers
from glimpse.config import GlimpseConfig, load_config
from glimpse.ingest.events import UploadEvent
from glimpse.services import Services

logger = logging.getLogger(__name__)


class UploadNotification(BaseModel):
    """Object-finalized notification body (storage notifier field names)."""

    model_config = ConfigDict(populate_by_name=True)

    bucket: str | None = None
    name: str | None = None
    content_type: str | None = Field(default=None, alias="contentType")

    def to_event(self) -> UploadEvent:
        return UploadEvent(bucket=self.bucket, path=self.name, content_type=self.content_type)


class GenerateRequest(BaseModel):
    """Image generation body. *count* is parsed leniently by the handler."""

    prompt: str | None = None
    count: int | str | None = None


def create_app(services: Services | None = None, config: GlimpseConfig | None = None) -> FastAPI:
    """Build the app. Services are connected at startup and closed at shutdown."""
    if services is None:
        services = Services(config or load_config())
    cfg = services.config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services.connect()
        logger.info("Glimpse API ready (db: %s)", cfg.storage.db_path)
        try:
            yield
        finally:
            await services.aclose()

    app = FastAPI(title="Glimpse", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.server.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )

    @app.get("/search")
    async def search(q: str | None = None, limit: str | None = Query(default=None)):
        status, payload = await handlers.search(services, q, limit)
        return JSONResponse(status_code=status, content=payload)

    @app.get("/semantic-search")
    async def semantic_search(q: str | None = None, limit: str | None = Query(default=None)):
        status, payload = await handlers.semantic_search(services, q, limit)
        return JSONResponse(status_code=status, content=payload)

    @app.post("/ingest", status_code=202)
    async def ingest(notification: UploadNotification):
        result = await handlers.ingest_event(services, notification.to_event())
        return {"status": result.status.value}

    @app.post("/generate")
    async def generate(request: GenerateRequest):
        status, payload = await handlers.generate(services, request.prompt, request.count)
        return JSONResponse(status_code=status, content=payload)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "images": await services.keyword_index.count(),
            "vectors": await services.vector_index.count(),
        }

    return app

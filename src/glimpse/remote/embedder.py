"""Multimodal embeddings from the Vertex AI prediction endpoint.

Request:   {"instances": [{"text": ...} | {"image": {"gcsUri": ...}}],
            "parameters": {"dimension": 1408}}
Response:  {"predictions": [{"textEmbedding": [...]} | {"imageEmbedding": [...]}]}

The prediction is resolved once into TextEmbedding | ImageEmbedding; callers of
``embed()`` only ever see the vector.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from glimpse.errors import (
    EmbeddingDimensionError,
    EmptyPredictionError,
    InvalidEmbeddingInputError,
    NoEmbeddingFoundError,
    RemoteCallError,
)
from glimpse.remote.retry import RetryPolicy

logger = logging.getLogger(__name__)

_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
_ENDPOINT = (
    "https://{location}-aiplatform.googleapis.com/v1/projects/{project}"
    "/locations/{location}/publishers/google/models/{model}:predict"
)

TokenProvider = Callable[[], Awaitable[str]]


@dataclass(frozen=True)
class TextEmbedding:
    vector: list[float]


@dataclass(frozen=True)
class ImageEmbedding:
    vector: list[float]


Embedding = TextEmbedding | ImageEmbedding


def resolve_prediction(prediction: dict) -> Embedding:
    """Pick whichever embedding field the prediction carries.

    Raises:
        NoEmbeddingFoundError: Neither ``textEmbedding`` nor ``imageEmbedding`` is present.
    """
    if prediction.get("textEmbedding"):
        return TextEmbedding([float(v) for v in prediction["textEmbedding"]])
    if prediction.get("imageEmbedding"):
        return ImageEmbedding([float(v) for v in prediction["imageEmbedding"]])
    raise NoEmbeddingFoundError("No textEmbedding or imageEmbedding found in prediction.")


class GoogleTokenProvider:
    """OAuth access tokens from application default credentials.

    Credentials are loaded on first use and refreshed in a worker thread
    whenever they are no longer valid.
    """

    def __init__(self) -> None:
        self._credentials = None
        self._lock = asyncio.Lock()

    async def __call__(self) -> str:
        async with self._lock:
            if self._credentials is None:
                self._credentials = await asyncio.to_thread(self._load)
            if not self._credentials.valid:
                await asyncio.to_thread(self._refresh)
            return self._credentials.token

    def _load(self):
        import google.auth

        credentials, _project = google.auth.default(scopes=_SCOPES)
        return credentials

    def _refresh(self) -> None:
        from google.auth.transport.requests import Request

        self._credentials.refresh(Request())


class EmbeddingClient:
    """Embed text or an image reference into a fixed-length vector.

    Args:
        project: GCP project hosting the prediction endpoint.
        location: GCP region (e.g. ``us-central1``).
        model: Publisher model id (``multimodalembedding@001``).
        dimension: Requested output dimension; responses of any other length
            are rejected.
        retry: Policy wrapping each remote call.
        http_client: Shared httpx.AsyncClient (one is created if omitted).
        token_provider: Async callable returning a bearer token.
    """

    def __init__(
        self,
        project: str,
        location: str = "us-central1",
        model: str = "multimodalembedding@001",
        dimension: int = 1408,
        retry: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
        token_provider: TokenProvider | None = None,
    ) -> None:
        self.project = project
        self.location = location
        self.model = model
        self.dimension = dimension
        self._retry = retry or RetryPolicy()
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=60.0)
        self._token_provider = token_provider or GoogleTokenProvider()

    @property
    def endpoint(self) -> str:
        return _ENDPOINT.format(location=self.location, project=self.project, model=self.model)

    def build_request(self, text: str | None = None, image_ref: str | None = None) -> dict:
        """Build the predict request body.

        Raises:
            InvalidEmbeddingInputError: If neither *text* nor *image_ref* is given.
        """
        instance: dict = {}
        if text:
            instance["text"] = text
        if image_ref:
            instance["image"] = {"gcsUri": image_ref}
        if not instance:
            raise InvalidEmbeddingInputError("Either text or an image reference must be provided.")
        return {"instances": [instance], "parameters": {"dimension": self.dimension}}

    async def embed(self, text: str | None = None, image_ref: str | None = None) -> list[float]:
        """Return the embedding vector for *text* or *image_ref*.

        Raises:
            InvalidEmbeddingInputError: Neither input supplied.
            EmptyPredictionError: The response holds no predictions.
            NoEmbeddingFoundError: The prediction holds no embedding field.
            EmbeddingDimensionError: The vector length is not ``dimension``.
            RemoteCallError: The endpoint answered with an error status.
        """
        body = self.build_request(text=text, image_ref=image_ref)
        label = f"embed {'image ' + image_ref if image_ref else 'text'}"
        payload = await self._retry.run(lambda: self._predict(body), label=label)

        predictions = payload.get("predictions") or []
        if not predictions:
            raise EmptyPredictionError("No predictions returned from the embedding service.")

        embedding = resolve_prediction(predictions[0])
        if len(embedding.vector) != self.dimension:
            raise EmbeddingDimensionError(self.dimension, len(embedding.vector))
        logger.debug("%s: %d-dim %s", label, self.dimension, type(embedding).__name__)
        return embedding.vector

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    async def _predict(self, body: dict) -> dict:
        token = await self._token_provider()
        response = await self._http.post(
            self.endpoint,
            json=body,
            headers={"Authorization": f"Bearer {token}"},
        )
        if response.is_error:
            raise RemoteCallError(
                f"Embedding request failed with status {response.status_code}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )
        return response.json()

"""Text-to-image generation through the Vertex AI generateContent endpoint.

Request:   {"contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "image/png", "candidateCount": n}}
Response:  {"candidates": [{"finishReason": ..., "content": {"parts": [
                {"inlineData": {"mimeType": "image/png", "data": <base64>}} | {"text": ...}
            ]}}]}
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

import httpx

from glimpse.errors import (
    NoCandidatesError,
    NoImagesGeneratedError,
    RemoteCallError,
    TextInsteadOfImageError,
)
from glimpse.remote.embedder import GoogleTokenProvider, TokenProvider
from glimpse.remote.retry import RetryPolicy

logger = logging.getLogger(__name__)

_ENDPOINT = (
    "https://{location}-aiplatform.googleapis.com/v1/projects/{project}"
    "/locations/{location}/publishers/google/models/{model}:generateContent"
)
_BLOCKED = "SAFETY"


@dataclass(frozen=True)
class GeneratedImage:
    data: bytes
    mime_type: str = "image/png"


def extract_images(payload: dict) -> list[GeneratedImage]:
    """Decode the inline image of every candidate the safety filter let through.

    Only the first part of each candidate is inspected. Blocked candidates and
    candidates without parts are skipped.

    Raises:
        NoCandidatesError: The response holds no candidates.
        TextInsteadOfImageError: A candidate answered with text instead of an image.
        NoImagesGeneratedError: No candidate carried an image.
    """
    candidates = payload.get("candidates") or []
    if not candidates:
        raise NoCandidatesError("No image candidates were generated by the API.")

    images: list[GeneratedImage] = []
    for candidate in candidates:
        reason = candidate.get("finishReason")
        parts = (candidate.get("content") or {}).get("parts") or []
        if reason == _BLOCKED or not parts:
            logger.warning("Image candidate blocked due to: %s", reason)
            continue
        part = parts[0]
        inline = part.get("inlineData") or {}
        if inline.get("data"):
            images.append(
                GeneratedImage(
                    data=base64.b64decode(inline["data"]),
                    mime_type=inline.get("mimeType") or "image/png",
                )
            )
        elif part.get("text"):
            logger.warning("API returned text instead of image: %s", part["text"])
            raise TextInsteadOfImageError(part["text"])

    if not images:
        raise NoImagesGeneratedError(
            "No images were successfully generated. Check logs for safety warnings."
        )
    return images


class ImageGenerationClient:
    """Generate PNG images from a text prompt.

    Args:
        project: GCP project hosting the model.
        location: GCP region (e.g. ``us-central1``).
        model: Publisher model id.
        retry: Policy wrapping each remote call.
        http_client: Shared httpx.AsyncClient (one is created if omitted).
        token_provider: Async callable returning a bearer token.
    """

    def __init__(
        self,
        project: str,
        location: str = "us-central1",
        model: str = "gemini-2.5-flash-image",
        retry: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
        token_provider: TokenProvider | None = None,
    ) -> None:
        self.project = project
        self.location = location
        self.model = model
        self._retry = retry or RetryPolicy()
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=120.0)
        self._token_provider = token_provider or GoogleTokenProvider()

    @property
    def endpoint(self) -> str:
        return _ENDPOINT.format(location=self.location, project=self.project, model=self.model)

    def build_request(self, prompt: str, count: int) -> dict:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "image/png", "candidateCount": count},
        }

    async def generate(self, prompt: str, count: int = 1) -> list[GeneratedImage]:
        """Return up to *count* images for *prompt*.

        Raises:
            RemoteCallError: The endpoint answered with an error status.
            GenerationError: See extract_images().
        """
        body = self.build_request(prompt, count)
        logger.info("Generating %d image(s) for prompt: %r", count, prompt)
        payload = await self._retry.run(lambda: self._generate(body), label="generate image")
        return extract_images(payload)

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    async def _generate(self, body: dict) -> dict:
        token = await self._token_provider()
        response = await self._http.post(
            self.endpoint,
            json=body,
            headers={"Authorization": f"Bearer {token}"},
        )
        if response.is_error:
            raise RemoteCallError(
                f"API request failed with status {response.status_code}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )
        return response.json()

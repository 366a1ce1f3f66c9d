"""Image description via a multimodal generative model (LiteLLM).

The model is asked for a JSON object ``{"title": ..., "description": ...}``.
Replies are parsed into one of two variants:

  StructuredDescription: the reply was a JSON object
  RawDescription:        anything else; the whole text becomes the description

Both map to the same ``Description`` through ``to_description()``, so a reply
that ignores the requested format still yields searchable text.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

import litellm

from glimpse.errors import MissingDescriptionError, NoContentError, RemoteCallError
from glimpse.remote.retry import RetryPolicy

logger = logging.getLogger(__name__)

PLACEHOLDER_TITLE = "Untitled Image"

DESCRIBE_PROMPT = """\
Describe this image for a searchable image library.

Return:
- "title": a short title of 5 to 10 words.
- "description": a detailed description covering the main objects, the setting, \
the dominant colors, and any text visible in the image.

Respond with ONLY a JSON object containing exactly the keys "title" and \
"description". No markdown, no code fences, no extra keys."""

_FENCE_RE = re.compile(r"```json|```")


@dataclass(frozen=True)
class Description:
    title: str
    description: str


@dataclass(frozen=True)
class StructuredDescription:
    title: str
    description: str


@dataclass(frozen=True)
class RawDescription:
    text: str


DescriptionParse = StructuredDescription | RawDescription


def parse_description(text: str) -> DescriptionParse:
    """Strip code fences and parse *text* as a JSON object.

    Returns RawDescription(text) with the original, unstripped text when the
    reply is not a JSON object.
    """
    cleaned = _FENCE_RE.sub("", text).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        return RawDescription(text)
    if not isinstance(data, dict):
        return RawDescription(text)
    return StructuredDescription(
        title=_as_text(data.get("title")),
        description=_as_text(data.get("description")),
    )


def to_description(parsed: DescriptionParse) -> Description:
    """Map either parse variant to a Description.

    Raises:
        MissingDescriptionError: If the resulting description is empty.
    """
    if isinstance(parsed, StructuredDescription):
        title = parsed.title or PLACEHOLDER_TITLE
        description = parsed.description
    else:
        title = PLACEHOLDER_TITLE
        description = parsed.text

    if not description.strip():
        raise MissingDescriptionError("Description missing in model response.")
    return Description(title=title, description=description)


def _as_text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


class DescriptionClient:
    """Ask a LiteLLM vision model for a title and description of an image.

    Args:
        model: LiteLLM model string (e.g. ``vertex_ai/gemini-2.5-flash``).
        retry: Policy wrapping each remote call.
        vertex_project: GCP project for ``vertex_ai/`` models (None = SDK default).
        vertex_location: GCP region for ``vertex_ai/`` models.
        max_tokens: Maximum output tokens.
        temperature: Sampling temperature.
    """

    def __init__(
        self,
        model: str = "vertex_ai/gemini-2.5-flash",
        retry: RetryPolicy | None = None,
        vertex_project: str | None = None,
        vertex_location: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.2,
    ) -> None:
        self.model = model
        self._retry = retry or RetryPolicy()
        self._vertex_project = vertex_project
        self._vertex_location = vertex_location
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def describe(self, image_ref: str, mime_type: str) -> Description:
        """Describe the image at *image_ref* (e.g. a ``gs://`` URI).

        Raises:
            NoContentError: The model returned no text.
            MissingDescriptionError: No description survived parsing.
            RemoteCallError: The model call failed (after retries if rate-limited).
        """
        text = await self._retry.run(
            lambda: self._request(image_ref, mime_type), label=f"describe {image_ref}"
        )
        if not text or not text.strip():
            raise NoContentError(f"No text returned by {self.model} for {image_ref}.")

        parsed = parse_description(text)
        if isinstance(parsed, RawDescription):
            logger.info("Reply for %s was not JSON; using raw text as description", image_ref)
        return to_description(parsed)

    def build_messages(self, image_ref: str, mime_type: str) -> list[dict]:
        """OpenAI-style message list: instruction text plus the image part."""
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": DESCRIBE_PROMPT},
                    {
                        "type": "image_url",
                        "image_url": {"url": image_ref, "format": mime_type},
                    },
                ],
            }
        ]

    async def _request(self, image_ref: str, mime_type: str) -> str:
        kwargs: dict = {}
        if self._vertex_project:
            kwargs["vertex_project"] = self._vertex_project
        if self._vertex_location:
            kwargs["vertex_location"] = self._vertex_location
        try:
            response = await litellm.acompletion(
                model=self.model,
                messages=self.build_messages(image_ref, mime_type),
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                num_retries=0,  # RetryPolicy owns backoff
                **kwargs,
            )
        except Exception as exc:
            status = getattr(exc, "status_code", None)
            if status is None:
                raise
            raise RemoteCallError(
                f"Description request to {self.model} failed ({status}): {exc}",
                status_code=status,
            ) from exc
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

"""Upload notifications and the locators derived from them."""

from __future__ import annotations

import posixpath
import urllib.parse
from dataclasses import dataclass

from glimpse.config import DEFAULT_PUBLIC_URL_TEMPLATE
from glimpse.errors import ValidationError


@dataclass(frozen=True)
class UploadEvent:
    """One finalized object upload, as delivered by the storage notifier."""

    bucket: str | None
    path: str | None
    content_type: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> UploadEvent:
        """Build from a notifier payload (``name``/``path``, ``contentType``)."""
        return cls(
            bucket=payload.get("bucket"),
            path=payload.get("name") or payload.get("path"),
            content_type=payload.get("contentType") or payload.get("content_type"),
        )

    def validate(self) -> None:
        """Raise ValidationError unless this is an image upload with a path."""
        if not self.content_type or not self.content_type.startswith("image/"):
            raise ValidationError(f"Not an image upload (content type {self.content_type!r}).")
        if not self.path:
            raise ValidationError("Upload event has no object path.")
        if not self.bucket:
            raise ValidationError("Upload event has no bucket.")
        if not image_id(self.path):
            raise ValidationError(f"Object path {self.path!r} has no file name.")


def image_id(path: str) -> str:
    """Document id for an object path: its basename, ignoring trailing slashes."""
    return posixpath.basename(path.rstrip("/"))


def source_uri(bucket: str, path: str) -> str:
    """Storage locator passed to the remote model services."""
    return f"gs://{bucket}/{path}"


def public_url(bucket: str, path: str, template: str = DEFAULT_PUBLIC_URL_TEMPLATE) -> str:
    """Client-resolvable display URL, with the path fully percent-encoded."""
    return template.format(
        bucket=bucket,
        path=path,
        quoted_path=urllib.parse.quote(path, safe=""),
    )

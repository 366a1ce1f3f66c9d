"""Object storage for generated images.

Any bucket-style store can stand in for ObjectStore; GcsObjectStore writes to
Google Cloud Storage, the bucket the upload notifier watches.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from google.cloud import storage

from glimpse.config import DEFAULT_PUBLIC_URL_TEMPLATE
from glimpse.ingest.events import public_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredObject:
    bucket: str
    path: str
    public_url: str


class ObjectStore(Protocol):
    async def put(
        self, path: str, data: bytes, content_type: str, metadata: dict[str, str]
    ) -> StoredObject:
        """Write *data* to *path*, replacing any existing object."""


class GcsObjectStore:
    """ObjectStore backed by a Google Cloud Storage bucket.

    The google-cloud-storage client is synchronous, so uploads run on a worker
    thread. The client is created on first use from application default
    credentials unless one is passed in.
    """

    def __init__(
        self,
        bucket: str,
        project: str | None = None,
        client: storage.Client | None = None,
        public_url_template: str = DEFAULT_PUBLIC_URL_TEMPLATE,
    ) -> None:
        self.bucket = bucket
        self.project = project
        self._client = client
        self._public_url_template = public_url_template

    async def put(
        self, path: str, data: bytes, content_type: str, metadata: dict[str, str]
    ) -> StoredObject:
        await asyncio.to_thread(self._upload, path, data, content_type, metadata)
        url = public_url(self.bucket, path, self._public_url_template)
        logger.info("Image saved to: %s", url)
        return StoredObject(bucket=self.bucket, path=path, public_url=url)

    def _upload(
        self, path: str, data: bytes, content_type: str, metadata: dict[str, str]
    ) -> None:
        if self._client is None:
            self._client = storage.Client(project=self.project)
        blob = self._client.bucket(self.bucket).blob(path)
        blob.metadata = metadata
        blob.upload_from_string(data, content_type=content_type)

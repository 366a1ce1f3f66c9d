"""Tests for the Cloud Storage object store."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from glimpse.remote.storage import GcsObjectStore, StoredObject


@pytest.mark.asyncio
async def test_put_uploads_blob_with_metadata():
    client = MagicMock()
    blob = client.bucket.return_value.blob.return_value
    store = GcsObjectStore("photos", client=client)

    stored = await store.put(
        "generated/1-fox-0.png", b"png-bytes", "image/png", {"generatedFromPrompt": "fox"}
    )

    client.bucket.assert_called_once_with("photos")
    client.bucket.return_value.blob.assert_called_once_with("generated/1-fox-0.png")
    blob.upload_from_string.assert_called_once_with(b"png-bytes", content_type="image/png")
    assert blob.metadata == {"generatedFromPrompt": "fox"}
    assert stored == StoredObject(
        bucket="photos",
        path="generated/1-fox-0.png",
        public_url=(
            "https://firebasestorage.googleapis.com/v0/b/photos/o/"
            "generated%2F1-fox-0.png?alt=media"
        ),
    )


@pytest.mark.asyncio
async def test_put_uses_custom_url_template():
    store = GcsObjectStore(
        "photos", client=MagicMock(), public_url_template="https://cdn.test/{bucket}/{path}"
    )
    stored = await store.put("generated/a.png", b"x", "image/png", {})
    assert stored.public_url == "https://cdn.test/photos/generated/a.png"


@pytest.mark.asyncio
async def test_upload_errors_propagate():
    client = MagicMock()
    client.bucket.return_value.blob.return_value.upload_from_string.side_effect = OSError("denied")
    store = GcsObjectStore("photos", client=client)
    with pytest.raises(OSError, match="denied"):
        await store.put("generated/a.png", b"x", "image/png", {})


@pytest.mark.asyncio
async def test_client_created_lazily(monkeypatch):
    created = MagicMock()
    factory = MagicMock(return_value=created)
    monkeypatch.setattr("glimpse.remote.storage.storage.Client", factory)

    store = GcsObjectStore("photos", project="my-project")
    factory.assert_not_called()
    await store.put("generated/a.png", b"x", "image/png", {})
    factory.assert_called_once_with(project="my-project")

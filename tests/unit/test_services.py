"""Tests for the Services container."""

from __future__ import annotations

from pathlib import Path

import pytest

from glimpse.config import GlimpseConfig
from glimpse.db.keyword_index import SqliteKeywordIndex
from glimpse.db.vector_index import SqliteVectorIndex
from glimpse.errors import ConfigError
from glimpse.ingest.events import UploadEvent
from glimpse.remote.describer import DescriptionClient
from glimpse.remote.embedder import EmbeddingClient
from glimpse.remote.generator import ImageGenerationClient
from glimpse.remote.storage import GcsObjectStore
from glimpse.services import Services
from helpers import fake_describer, fake_embedder, fake_generator, fake_store


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT", "GLIMPSE_EMULATOR"):
        monkeypatch.delenv(var, raising=False)


def _config(tmp_path: Path, project: str | None = None) -> GlimpseConfig:
    cfg = GlimpseConfig()
    cfg.storage.db_path = str(tmp_path / ".glimpse.db")
    cfg.gcp.project = project
    return cfg


def test_handles_require_connect(tmp_path: Path) -> None:
    services = Services(_config(tmp_path))
    with pytest.raises(RuntimeError, match="connect"):
        services.keyword_index


@pytest.mark.asyncio
async def test_connect_builds_everything_from_config(tmp_path: Path) -> None:
    services = Services(_config(tmp_path, project="my-project")).connect()
    try:
        assert isinstance(services.keyword_index, SqliteKeywordIndex)
        assert isinstance(services.vector_index, SqliteVectorIndex)
        assert isinstance(services.describer, DescriptionClient)
        assert isinstance(services.embedder, EmbeddingClient)
        assert services.embedder.project == "my-project"
        assert services.embedder.dimension == 1408
        assert (tmp_path / ".glimpse.db").exists()
    finally:
        await services.aclose()
    assert not services.connected


@pytest.mark.asyncio
async def test_connect_is_idempotent(tmp_path: Path) -> None:
    services = Services(_config(tmp_path, project="p"))
    services.connect()
    index = services.keyword_index
    services.connect()
    assert services.keyword_index is index
    await services.aclose()


@pytest.mark.asyncio
async def test_indexes_share_one_connection_lock(tmp_path: Path) -> None:
    services = Services(_config(tmp_path)).connect()
    try:
        assert services.keyword_index._lock is services.vector_index._lock
    finally:
        await services.aclose()


@pytest.mark.asyncio
async def test_embedder_without_project_raises_config_error(tmp_path: Path) -> None:
    services = Services(_config(tmp_path)).connect()
    try:
        with pytest.raises(ConfigError, match="GCP project"):
            services.embedder
        with pytest.raises(ConfigError):
            services.semantic_ranker()
        # keyword search needs no remote service
        assert await services.keyword_ranker().search("", 5) == []
    finally:
        await services.aclose()


@pytest.mark.asyncio
async def test_injected_handles_are_used(tmp_path: Path, keyword_index, vector_index) -> None:
    describer, embedder = fake_describer(), fake_embedder()
    services = Services(
        _config(tmp_path),
        describer=describer,
        embedder=embedder,
        keyword_index=keyword_index,
        vector_index=vector_index,
    ).connect()

    assert services.describer is describer
    assert services.embedder is embedder
    assert services.keyword_index is keyword_index

    await services.aclose()
    embedder.aclose.assert_awaited_once()


def test_retry_policy_follows_config(tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    cfg.retry.max_attempts = 3
    cfg.retry.initial_delay = 0.25
    policy = Services(cfg).retry_policy()
    assert policy.max_attempts == 3
    assert policy.backoff(2) == 0.5


@pytest.mark.asyncio
async def test_pipeline_uses_emulator_override(
    tmp_path: Path, keyword_index, vector_index, monkeypatch: pytest.MonkeyPatch
) -> None:
    cfg = _config(tmp_path)
    cfg.emulator.source_uri = "gs://samples/cat.jpg"
    cfg.emulator.content_type = "image/jpeg"
    describer = fake_describer()
    services = Services(
        cfg,
        describer=describer,
        embedder=fake_embedder(),
        keyword_index=keyword_index,
        vector_index=vector_index,
    ).connect()

    monkeypatch.setenv("GLIMPSE_EMULATOR", "true")
    await services.pipeline().ingest(UploadEvent("local", "uploads/x.bin", "application/octet-stream"))
    describer.describe.assert_awaited_once_with("gs://samples/cat.jpg", "image/jpeg")


def test_rankers_follow_search_config(tmp_path: Path, keyword_index, vector_index) -> None:
    cfg = _config(tmp_path)
    cfg.search.max_query_keywords = 2
    services = Services(
        cfg,
        describer=fake_describer(),
        embedder=fake_embedder(),
        keyword_index=keyword_index,
        vector_index=vector_index,
    ).connect()
    assert services.keyword_ranker().query_keywords("one two three four") == ["one", "two"]


@pytest.mark.asyncio
async def test_connect_builds_generation_clients_from_config(tmp_path: Path) -> None:
    cfg = _config(tmp_path, project="my-project")
    cfg.storage.bucket = "photos"
    cfg.generation.model = "gemini-2.5-flash-image"
    services = Services(cfg).connect()
    try:
        assert isinstance(services.generator, ImageGenerationClient)
        assert services.generator.model == "gemini-2.5-flash-image"
        assert isinstance(services.object_store, GcsObjectStore)
        assert services.object_store.bucket == "photos"
    finally:
        await services.aclose()


@pytest.mark.asyncio
async def test_generation_without_project_or_bucket_raises_config_error(tmp_path: Path) -> None:
    services = Services(_config(tmp_path)).connect()
    try:
        with pytest.raises(ConfigError, match="GCP project"):
            services.generator
        with pytest.raises(ConfigError, match="storage bucket"):
            services.object_store
        with pytest.raises(ConfigError):
            services.generation()
    finally:
        await services.aclose()


@pytest.mark.asyncio
async def test_aclose_closes_generator(tmp_path: Path, keyword_index, vector_index) -> None:
    generator = fake_generator()
    services = Services(
        _config(tmp_path),
        describer=fake_describer(),
        embedder=fake_embedder(),
        keyword_index=keyword_index,
        vector_index=vector_index,
        generator=generator,
        object_store=fake_store(),
    ).connect()
    await services.aclose()
    generator.aclose.assert_awaited_once()

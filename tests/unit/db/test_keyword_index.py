"""Tests for the SQLite keyword index."""

from __future__ import annotations

import asyncio
import threading

import pytest

from helpers import make_record


@pytest.mark.asyncio
async def test_upsert_and_get(keyword_index):
    await keyword_index.upsert(make_record())
    record = await keyword_index.get("dog.jpg")
    assert record is not None
    assert record.title == "Dog on a beach"
    assert record.source_uri == "gs://photos/uploads/dog.jpg"
    assert record.keywords == {"golden", "retriever", "beach"}


@pytest.mark.asyncio
async def test_get_missing_returns_none(keyword_index):
    assert await keyword_index.get("nope.jpg") is None


@pytest.mark.asyncio
async def test_upsert_overwrites_same_id(keyword_index):
    await keyword_index.upsert(make_record(description="a golden retriever on a beach"))
    await keyword_index.upsert(
        make_record(description="a tabby cat asleep indoors", title="Sleeping cat")
    )

    assert await keyword_index.count() == 1
    record = await keyword_index.get("dog.jpg")
    assert record.title == "Sleeping cat"
    assert record.keywords == {"tabby", "cat", "asleep", "indoors"}


@pytest.mark.asyncio
async def test_overwrite_removes_stale_keywords(keyword_index):
    await keyword_index.upsert(make_record(description="golden retriever"))
    await keyword_index.upsert(make_record(description="tabby cat"))
    assert await keyword_index.query_by_keyword_overlap(["retriever"], limit=10) == []


@pytest.mark.asyncio
async def test_overlap_query_matches_any_keyword(keyword_index):
    await keyword_index.upsert(make_record(id="a.jpg", description="red bicycle street"))
    await keyword_index.upsert(make_record(id="b.jpg", description="blue bicycle park"))
    await keyword_index.upsert(make_record(id="c.jpg", description="mountain lake sunrise"))

    results = await keyword_index.query_by_keyword_overlap(["bicycle", "lake"], limit=10)
    assert {r.id for r in results} == {"a.jpg", "b.jpg", "c.jpg"}

    results = await keyword_index.query_by_keyword_overlap(["street"], limit=10)
    assert [r.id for r in results] == ["a.jpg"]


@pytest.mark.asyncio
async def test_overlap_query_returns_each_record_once(keyword_index):
    await keyword_index.upsert(make_record(description="red bicycle street"))
    results = await keyword_index.query_by_keyword_overlap(["red", "bicycle", "street"], limit=10)
    assert len(results) == 1


@pytest.mark.asyncio
async def test_overlap_query_respects_limit_newest_first(keyword_index):
    for i in range(5):
        await keyword_index.upsert(
            make_record(id=f"{i}.jpg", description="harbor boats", uploaded_at=f"2026-01-0{i + 1}")
        )
    results = await keyword_index.query_by_keyword_overlap(["harbor"], limit=3)
    assert [r.id for r in results] == ["4.jpg", "3.jpg", "2.jpg"]


@pytest.mark.asyncio
async def test_overlap_query_empty_keywords(keyword_index):
    await keyword_index.upsert(make_record())
    assert await keyword_index.query_by_keyword_overlap([], limit=5) == []


@pytest.mark.asyncio
async def test_query_recent_orders_by_uploaded_at(keyword_index):
    await keyword_index.upsert(make_record(id="old.jpg", uploaded_at="2025-01-01T00:00:00+00:00"))
    await keyword_index.upsert(make_record(id="new.jpg", uploaded_at="2026-06-01T00:00:00+00:00"))
    await keyword_index.upsert(make_record(id="mid.jpg", uploaded_at="2025-06-01T00:00:00+00:00"))

    results = await keyword_index.query_recent(2)
    assert [r.id for r in results] == ["new.jpg", "mid.jpg"]


@pytest.mark.asyncio
async def test_query_recent_zero_limit(keyword_index):
    await keyword_index.upsert(make_record())
    assert await keyword_index.query_recent(0) == []


@pytest.mark.asyncio
async def test_count(keyword_index):
    assert await keyword_index.count() == 0
    await keyword_index.upsert(make_record(id="a.jpg"))
    await keyword_index.upsert(make_record(id="b.jpg"))
    assert await keyword_index.count() == 2


@pytest.mark.asyncio
async def test_queries_run_on_worker_thread(keyword_index, monkeypatch):
    seen = []
    original = keyword_index._count

    def _count():
        seen.append(threading.get_ident())
        return original()

    monkeypatch.setattr(keyword_index, "_count", _count)
    assert await keyword_index.count() == 0
    assert seen and seen[0] != threading.get_ident()


@pytest.mark.asyncio
async def test_concurrent_upserts_all_land(keyword_index):
    await asyncio.gather(
        *(keyword_index.upsert(make_record(id=f"img{i}.jpg")) for i in range(10))
    )
    assert await keyword_index.count() == 10

"""
Test idempotent sync and search against a live Elasticsearch.

This is an integration test that requires:
- Elasticsearch running at localhost:9200 (or ELASTICSEARCH_NODE)

Dropbox is replaced by an in-memory storage client.

Run with: pytest tests/test_idempotency.py -v -s
"""
import os
import uuid

import httpx
import pytest
import pytest_asyncio

from app.config import Settings
from app.search_service import SearchService
from ingest.indexer import document_id
from ingest.pipeline import create_orchestrator
from tests.conftest import FakeStorage, make_entry

ES_NODE = os.environ.get("ELASTICSEARCH_NODE", "http://localhost:9200")


# Skip if Elasticsearch is not available
def elasticsearch_available():
    try:
        return httpx.get(ES_NODE, timeout=2).status_code == 200
    except httpx.HTTPError:
        return False


requires_elasticsearch = pytest.mark.skipif(
    not elasticsearch_available(),
    reason=f"Elasticsearch not available at {ES_NODE}"
)


@pytest_asyncio.fixture
async def live_es():
    from elasticsearch import AsyncElasticsearch

    client = AsyncElasticsearch(ES_NODE)
    index_name = f"test_dropsearch_{uuid.uuid4().hex[:8]}"
    yield client, index_name
    await client.indices.delete(index=index_name, ignore_unavailable=True)
    await client.close()


def live_settings(index_name: str) -> Settings:
    return Settings(ELASTICSEARCH_NODE=ES_NODE, ELASTICSEARCH_INDEX=index_name)


@requires_elasticsearch
@pytest.mark.asyncio
async def test_idempotent_sync(live_es):
    """
    Syncing the same files twice leaves exactly one document per path.
    """
    client, index_name = live_es
    entries = [make_entry("one.txt"), make_entry("two.txt")]
    storage = FakeStorage(
        entries=entries,
        contents={e.path: f"text of {e.name}".encode() for e in entries},
    )
    orchestrator = create_orchestrator(storage, client, live_settings(index_name))

    await orchestrator.run("/notes")
    count_after_first = (await client.count(index=index_name))["count"]

    await orchestrator.run("/notes")
    count_after_second = (await client.count(index=index_name))["count"]

    assert count_after_first == count_after_second == 2
    stored = await client.get(index=index_name, id=document_id("/notes/one.txt"))
    assert stored["_source"]["content"] == "text of one.txt"


@requires_elasticsearch
@pytest.mark.asyncio
async def test_search_after_sync_is_highlighted(live_es):
    client, index_name = live_es
    entry = make_entry("note.txt")
    storage = FakeStorage(entries=[entry], contents={entry.path: b"hello world"})

    await create_orchestrator(storage, client, live_settings(index_name)).run("/notes")
    hits = await SearchService(client, index_name).search("hello")

    assert len(hits) == 1
    assert hits[0].filename == "note.txt"
    assert hits[0].score > 0
    assert "<em>hello</em>" in hits[0].excerpt


@requires_elasticsearch
@pytest.mark.asyncio
async def test_failed_file_does_not_hide_others(live_es):
    """
    File 2 of 3 fails to fetch; files 1 and 3 are searchable after the run.
    """
    client, index_name = live_es
    entries = [make_entry("first.txt"), make_entry("second.txt"), make_entry("third.txt")]
    storage = FakeStorage(
        entries=entries,
        contents={
            entries[0].path: b"alpha report",
            entries[1].path: b"\xff\xfe broken",
            entries[2].path: b"gamma report",
        },
    )

    report = await create_orchestrator(storage, client, live_settings(index_name)).run("/notes")
    hits = await SearchService(client, index_name).search("report")

    assert [s.entry.name for s in report.skipped] == ["second.txt"]
    assert sorted(h.filename for h in hits) == ["first.txt", "third.txt"]

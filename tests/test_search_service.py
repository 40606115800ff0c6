"""
Tests for search query construction and response mapping.
"""
import pytest
from elasticsearch import ConnectionError as ESConnectionError

from app.errors import InvalidQueryError, SearchBackendError
from app.search_service import (
    ClientError,
    Hits,
    SearchHit,
    SearchService,
    ServerError,
    build_query,
)


def es_hit(filename, score, fragments=None, **source):
    hit = {
        "_id": filename,
        "_score": score,
        "_source": {
            "filename": filename,
            "url": f"https://dl.dropboxusercontent.com/s/{filename}",
            "lastModified": "2024-03-01T10:00:00Z",
            **source,
        },
    }
    if fragments is not None:
        hit["highlight"] = {"content": fragments}
    return hit


@pytest.mark.asyncio
async def test_search_builds_multi_match_with_highlight(es_client):
    service = SearchService(es_client, "dropbox_files", size=10)

    await service.search("hello")

    es_client.search.assert_awaited_once_with(
        index="dropbox_files",
        query={"bool": {"must": [{"multi_match": {"query": "hello", "fields": ["content", "filename"]}}]}},
        highlight={"fields": {"content": {}}},
        size=10,
    )


def test_build_query_searches_content_and_filename():
    query = build_query("report")
    assert query["bool"]["must"][0]["multi_match"]["fields"] == ["content", "filename"]


@pytest.mark.asyncio
async def test_hits_mapped_in_engine_order(es_client):
    es_client.search.return_value = {
        "hits": {
            "hits": [
                es_hit("note.txt", 2.5, ["say <em>hello</em> world", "second"]),
                es_hit("other.txt", 0.7),
            ]
        }
    }

    hits = await SearchService(es_client, "dropbox_files").search("hello")

    assert hits == [
        SearchHit(
            filename="note.txt",
            url="https://dl.dropboxusercontent.com/s/note.txt",
            lastModified="2024-03-01T10:00:00Z",
            score=2.5,
            excerpt="say <em>hello</em> world",
        ),
        SearchHit(
            filename="other.txt",
            url="https://dl.dropboxusercontent.com/s/other.txt",
            lastModified="2024-03-01T10:00:00Z",
            score=0.7,
            excerpt=None,
        ),
    ]


@pytest.mark.asyncio
async def test_missing_score_and_source_fields_default(es_client):
    es_client.search.return_value = {"hits": {"hits": [{"_id": "x", "_score": None, "_source": {}}]}}

    hits = await SearchService(es_client, "dropbox_files").search("x")

    assert hits == [SearchHit(filename="", url="", lastModified="", score=0, excerpt=None)]


@pytest.mark.asyncio
@pytest.mark.parametrize("term", [None, "", "   "])
async def test_blank_term_is_rejected(es_client, term):
    with pytest.raises(InvalidQueryError, match="Search term is required"):
        await SearchService(es_client, "dropbox_files").search(term)

    es_client.search.assert_not_awaited()


@pytest.mark.asyncio
async def test_backend_failure_raises(es_client):
    es_client.search.side_effect = ESConnectionError("connection refused")

    with pytest.raises(SearchBackendError):
        await SearchService(es_client, "dropbox_files").search("hello")


@pytest.mark.asyncio
async def test_execute_returns_discriminated_results(es_client):
    service = SearchService(es_client, "dropbox_files")
    es_client.search.return_value = {"hits": {"hits": [es_hit("note.txt", 1.0)]}}

    assert isinstance(await service.execute("hello"), Hits)
    assert await service.execute("") == ClientError(message="Search term is required")

    es_client.search.side_effect = ESConnectionError("connection refused")
    outcome = await service.execute("hello")
    assert outcome == ServerError(message="Search failed")

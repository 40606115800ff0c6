"""
Full-text search over the mirrored documents.

Query construction and response mapping only; relevance ranking is done by
Elasticsearch.
"""
from dataclasses import dataclass
from typing import Any

from elasticsearch import ApiError, AsyncElasticsearch, TransportError

from app.errors import InvalidQueryError, SearchBackendError
from app.logging_config import get_logger

logger = get_logger(__name__)

SEARCH_FIELDS = ["content", "filename"]
MISSING_TERM_MESSAGE = "Search term is required"
SEARCH_FAILED_MESSAGE = "Search failed"


@dataclass(frozen=True)
class SearchHit:
    filename: str
    url: str
    lastModified: str
    score: float
    excerpt: str | None = None


@dataclass(frozen=True)
class Hits:
    hits: list[SearchHit]


@dataclass(frozen=True)
class ClientError:
    message: str


@dataclass(frozen=True)
class ServerError:
    message: str


SearchOutcome = Hits | ClientError | ServerError


def build_query(term: str) -> dict[str, Any]:
    return {
        "bool": {
            "must": [
                {
                    "multi_match": {
                        "query": term,
                        "fields": SEARCH_FIELDS,
                    },
                },
            ],
        },
    }


def hit_from_response(hit: dict[str, Any]) -> SearchHit:
    source = hit.get("_source") or {}
    fragments = (hit.get("highlight") or {}).get("content") or []
    return SearchHit(
        filename=source.get("filename") or "",
        url=source.get("url") or "",
        lastModified=source.get("lastModified") or "",
        score=hit.get("_score") or 0,
        excerpt=fragments[0] if fragments else None,
    )


class SearchService:
    def __init__(self, client: AsyncElasticsearch, index_name: str, size: int = 10):
        self.client = client
        self.index_name = index_name
        self.size = size

    async def search(self, term: str | None) -> list[SearchHit]:
        """
        Run a multi-field match for `term` over content and filename.

        Hits are returned in the engine's relevance order.

        Raises:
            InvalidQueryError: If `term` is missing or blank.
            SearchBackendError: If the index fails to execute the query.
        """
        if term is None or not term.strip():
            raise InvalidQueryError(MISSING_TERM_MESSAGE)

        try:
            response = await self.client.search(
                index=self.index_name,
                query=build_query(term),
                highlight={"fields": {"content": {}}},
                size=self.size,
            )
        except (ApiError, TransportError) as e:
            raise SearchBackendError(f"Query against '{self.index_name}' failed: {e}") from e

        return [hit_from_response(hit) for hit in response["hits"]["hits"]]

    async def execute(self, term: str | None) -> SearchOutcome:
        """Like `search`, but returns failures as values for the HTTP boundary."""
        try:
            return Hits(hits=await self.search(term))
        except InvalidQueryError as e:
            return ClientError(message=str(e))
        except SearchBackendError as e:
            logger.error(f"Search error: {e}")
            return ServerError(message=SEARCH_FAILED_MESSAGE)

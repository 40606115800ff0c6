"""
Search index writer.

One Elasticsearch document per Dropbox path. The document ID is derived from
the path, so re-syncing an unchanged file overwrites it in place.
"""
import base64
from dataclasses import dataclass

from elasticsearch import ApiError, AsyncElasticsearch, TransportError

from app.errors import IndexWriteError, SchemaError
from app.logging_config import get_logger
from connectors.base import StorageEntry

logger = get_logger(__name__)

INDEX_MAPPINGS = {
    "properties": {
        "filename": {"type": "keyword"},
        "content": {"type": "text", "analyzer": "standard"},
        "path": {"type": "keyword"},
        "lastModified": {"type": "date"},
        "url": {"type": "keyword"},
    },
}


def document_id(path: str) -> str:
    """
    Deterministic index ID for a storage path.

    Same path always produces the same ID, ensuring idempotent upserts.
    """
    return base64.b64encode(path.encode("utf-8")).decode("ascii")


@dataclass(frozen=True)
class IndexedDocument:
    filename: str
    content: str
    path: str
    last_modified: str
    url: str

    @property
    def id(self) -> str:
        return document_id(self.path)

    @classmethod
    def from_entry(cls, entry: StorageEntry, content: str, url: str) -> "IndexedDocument":
        return cls(
            filename=entry.name,
            content=content,
            path=entry.path,
            last_modified=entry.modified_at_iso,
            url=url,
        )

    def to_source(self) -> dict:
        return {
            "filename": self.filename,
            "content": self.content,
            "path": self.path,
            "lastModified": self.last_modified,
            "url": self.url,
        }


class Indexer:
    def __init__(self, client: AsyncElasticsearch, index_name: str):
        self.client = client
        self.index_name = index_name

    async def ensure_schema(self) -> bool:
        """
        Create the index if it does not exist. An existing index is left as is.

        Returns:
            True if the index was created by this call.
        """
        try:
            if await self.client.indices.exists(index=self.index_name):
                return False
            logger.info(f"Creating index '{self.index_name}'...")
            await self.client.indices.create(
                index=self.index_name,
                mappings=INDEX_MAPPINGS,
            )
            return True
        except ApiError as e:
            if e.error == "resource_already_exists_exception":
                return False
            logger.error(f"Error creating index: {e}")
            raise SchemaError(f"Could not ensure index '{self.index_name}': {e}") from e
        except TransportError as e:
            logger.error(f"Error creating index: {e}")
            raise SchemaError(f"Could not ensure index '{self.index_name}': {e}") from e

    async def upsert(self, document: IndexedDocument) -> str:
        """
        Write or overwrite `document` and refresh so it is immediately searchable.

        Returns:
            The document ID.
        """
        try:
            await self.client.index(
                index=self.index_name,
                id=document.id,
                document=document.to_source(),
                refresh=True,
            )
        except (ApiError, TransportError) as e:
            raise IndexWriteError(document.path, f"index write failed: {e}") from e
        return document.id

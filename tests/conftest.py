"""
Shared test fixtures for dropsearch tests.
"""
import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.errors import StorageError
from connectors.base import BaseStorageClient, SourceType, StorageEntry


def make_entry(name: str, folder: str = "/notes", modified: str = "2024-03-01T10:00:00Z") -> StorageEntry:
    return StorageEntry(
        path=f"{folder}/{name}".lower(),
        name=name,
        modified_at=datetime.fromisoformat(modified.replace("Z", "+00:00")),
    )


class FakeStorage(BaseStorageClient):
    """
    In-memory storage client.

    `contents` maps a path to its bytes, or to an exception raised on download.
    Paths in `broken_links` fail both shared-link listing and creation.
    """

    def __init__(
        self,
        entries: list[StorageEntry],
        contents: dict[str, object] | None = None,
        shared_links: dict[str, list[str]] | None = None,
        broken_links: set[str] | None = None,
    ):
        self.entries = entries
        self.contents = contents or {}
        self.shared_links = shared_links or {}
        self.broken_links = broken_links or set()
        self.created_links: list[str] = []
        self.list_error: Exception | None = None
        self.list_gate: asyncio.Event | None = None

    @property
    def source_type(self) -> SourceType:
        return SourceType.DROPBOX

    async def list_entries_recursive(self, root: str) -> list[StorageEntry]:
        if self.list_gate is not None:
            await self.list_gate.wait()
        if self.list_error is not None:
            raise self.list_error
        return list(self.entries)

    async def download_bytes(self, path: str) -> bytes:
        value = self.contents.get(path, b"")
        if isinstance(value, Exception):
            raise value
        return value

    async def list_shared_links(self, path: str) -> list[str]:
        if path in self.broken_links:
            raise StorageError("sharing/list_shared_links failed: HTTP 500", status_code=500)
        return list(self.shared_links.get(path, []))

    async def create_shared_link(self, path: str) -> str:
        if path in self.broken_links:
            raise StorageError("create_shared_link_with_settings failed: HTTP 500", status_code=500)
        url = f"https://www.dropbox.com/scl/fi/{len(self.created_links)}{path}?dl=0"
        self.created_links.append(path)
        self.shared_links[path] = [url]
        return url


@pytest.fixture
def es_client() -> MagicMock:
    """
    Mock AsyncElasticsearch that keeps indexed documents in `es_client.docs`.
    """
    docs: dict[str, dict] = {}
    client = MagicMock()
    client.docs = docs
    client.indices.exists = AsyncMock(return_value=False)
    client.indices.create = AsyncMock()

    async def index(index, id, document, refresh=False):
        docs[id] = document
        return {"_id": id, "result": "created"}

    client.index = AsyncMock(side_effect=index)
    client.search = AsyncMock(return_value={"hits": {"hits": []}})
    return client


@pytest.fixture
def sample_entries() -> list[StorageEntry]:
    return [
        make_entry("a.txt"),
        make_entry("b.txt"),
        make_entry("c.txt"),
    ]


@pytest.fixture
def storage(sample_entries) -> FakeStorage:
    return FakeStorage(
        entries=sample_entries,
        contents={entry.path: f"content of {entry.name}".encode() for entry in sample_entries},
    )

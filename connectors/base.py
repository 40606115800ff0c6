"""
Base storage client interface for remote document sources.

A storage client exposes the four capabilities the sync pipeline consumes:
recursive listing, raw download, and shared-link listing/creation.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SourceType(str, Enum):
    """Supported remote storage providers."""
    DROPBOX = "dropbox"


@dataclass(frozen=True)
class StorageEntry:
    """
    A file in remote storage.

    `path` is the provider's normalized (lower-cased) path and is the identity
    of the document in the index.
    """
    path: str
    name: str
    modified_at: datetime

    @property
    def modified_at_iso(self) -> str:
        return self.modified_at.isoformat().replace("+00:00", "Z")


class BaseStorageClient(ABC):
    """
    Abstract base class for remote storage clients.

    Implementations raise `StorageError` for any provider failure.
    """

    @property
    @abstractmethod
    def source_type(self) -> SourceType:
        """Return the provider of this client."""
        pass

    @abstractmethod
    async def list_entries_recursive(self, root: str) -> list[StorageEntry]:
        """
        List every file under `root`, recursively, in provider order.
        """
        pass

    @abstractmethod
    async def download_bytes(self, path: str) -> bytes:
        """Download the raw content of a file."""
        pass

    @abstractmethod
    async def list_shared_links(self, path: str) -> list[str]:
        """Return the URLs of existing shared links for a file."""
        pass

    @abstractmethod
    async def create_shared_link(self, path: str) -> str:
        """Create a public shared link for a file and return its URL."""
        pass

"""
Connectors module for remote storage integrations.

Each storage client implements the BaseStorageClient interface so the sync
pipeline can enumerate, download and share files independently of the
provider.

Available clients:
- DropboxClient: Dropbox HTTP API v2 (refresh-token OAuth via TokenManager)
"""
from connectors.base import (
    BaseStorageClient,
    SourceType,
    StorageEntry,
)
from connectors.dropbox_auth import AccessToken, TokenManager
from connectors.dropbox_client import DropboxClient
from connectors.state_store import StateStore

__all__ = [
    "BaseStorageClient",
    "SourceType",
    "StorageEntry",
    "AccessToken",
    "TokenManager",
    "DropboxClient",
    "StateStore",
]

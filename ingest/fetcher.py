"""
Document content download.
"""
from app.errors import FetchError, StorageError
from connectors.base import BaseStorageClient, StorageEntry


class ContentFetcher:
    """Downloads a remote file and returns it as UTF-8 text."""

    def __init__(self, storage: BaseStorageClient, encoding: str = "utf-8-sig"):
        self.storage = storage
        # utf-8-sig drops a leading byte-order mark
        self.encoding = encoding

    async def fetch_text(self, entry: StorageEntry) -> str:
        try:
            payload = await self.storage.download_bytes(entry.path)
        except StorageError as e:
            raise FetchError(entry.path, f"download failed: {e}") from e

        if not isinstance(payload, (bytes, bytearray)):
            raise FetchError(
                entry.path, f"expected bytes, got {type(payload).__name__}"
            )
        try:
            return bytes(payload).decode(self.encoding)
        except UnicodeDecodeError as e:
            raise FetchError(entry.path, f"not valid UTF-8 text: {e}") from e

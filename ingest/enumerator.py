"""
Remote document enumeration.
"""
from app.errors import EnumerationError, StorageError
from app.logging_config import get_logger
from connectors.base import BaseStorageClient, StorageEntry

logger = get_logger(__name__)


class FileEnumerator:
    """Lists remote files under a root and keeps the supported document type."""

    def __init__(self, storage: BaseStorageClient, extension: str = ".txt"):
        self.storage = storage
        self.extension = extension

    def is_supported(self, entry: StorageEntry) -> bool:
        # Case-sensitive on purpose: "c.TXT" is not a ".txt" document
        return entry.name.endswith(self.extension)

    async def list_documents(self, root: str) -> list[StorageEntry]:
        """
        List supported documents under `root` in provider order.

        Raises:
            EnumerationError: If the provider listing fails. A partial listing
                is never returned.
        """
        try:
            entries = await self.storage.list_entries_recursive(root)
        except StorageError as e:
            raise EnumerationError(f"Could not list {root or '/'}: {e}") from e

        documents = [entry for entry in entries if self.is_supported(entry)]
        logger.info(f"Found {len(documents)} {self.extension} files to index")
        return documents

"""
Shared link resolution.

Every indexed document carries a public URL that serves the raw file. The
resolver reuses the first existing shared link of a file, or creates one, and
rewrites it to Dropbox's direct-content host.
"""
from dataclasses import dataclass
from urllib.parse import quote, urlsplit, urlunsplit

from app.errors import LinkResolutionError, StorageError
from app.logging_config import get_logger
from connectors.base import BaseStorageClient, StorageEntry

logger = get_logger(__name__)

SHARING_HOST = "www.dropbox.com"
DIRECT_CONTENT_HOST = "dl.dropboxusercontent.com"

PLACEHOLDER_PREFIX = "temporary-link-for-"


def normalize_shared_link(url: str) -> str:
    """
    Turn a Dropbox sharing URL into a direct-download URL.

    >>> normalize_shared_link("https://www.dropbox.com/s/abc?dl=0")
    'https://dl.dropboxusercontent.com/s/abc'
    """
    parts = urlsplit(url)
    netloc = DIRECT_CONTENT_HOST if parts.netloc == SHARING_HOST else parts.netloc
    # Other parameters are kept verbatim
    query = "&".join(p for p in parts.query.split("&") if p and p != "dl=0")
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def placeholder_link(filename: str) -> str:
    return f"{PLACEHOLDER_PREFIX}{quote(filename, safe='')}"


def is_placeholder_link(url: str) -> bool:
    return url.startswith(PLACEHOLDER_PREFIX)


@dataclass(frozen=True)
class LinkResolution:
    url: str
    degraded: bool = False


class LinkResolver:
    def __init__(self, storage: BaseStorageClient):
        self.storage = storage

    async def _lookup(self, entry: StorageEntry) -> str:
        try:
            links = await self.storage.list_shared_links(entry.path)
            if links:
                return links[0]
            return await self.storage.create_shared_link(entry.path)
        except StorageError as e:
            raise LinkResolutionError(entry.path, str(e)) from e

    async def resolve_link(self, entry: StorageEntry) -> LinkResolution:
        """
        Return a direct-download URL for `entry`.

        Never raises for provider failures: a placeholder URL is substituted so
        the file can still be indexed.
        """
        try:
            url = await self._lookup(entry)
        except LinkResolutionError as e:
            logger.warning(
                f"Could not create shared link for {entry.name}, using temporary link ({e})"
            )
            return LinkResolution(url=placeholder_link(entry.name), degraded=True)
        return LinkResolution(url=normalize_shared_link(url))

"""
Error taxonomy for dropsearch.

Fatal (abort a sync run or startup):
- AuthConfigError, AuthRefreshError, SchemaError, EnumerationError

Per-file (logged, file skipped, batch continues):
- LinkResolutionError, FetchError, IndexWriteError

Request-level:
- InvalidQueryError (client), SearchBackendError (server)
"""


class DropSearchError(Exception):
    """Base class for all dropsearch errors."""


class AuthError(DropSearchError):
    """Credential lifecycle failure. Always fatal to the calling operation."""


class AuthConfigError(AuthError):
    """Required Dropbox credential fields are missing."""


class AuthRefreshError(AuthError):
    """The refresh-token exchange failed."""


class StorageError(DropSearchError):
    """A Dropbox API call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EnumerationError(DropSearchError):
    """Listing the remote folder failed."""


class SchemaError(DropSearchError):
    """The search index could not be checked or created."""


class SyncEntryError(DropSearchError):
    """Failure scoped to a single file of a sync run."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class LinkResolutionError(SyncEntryError):
    """No shared link could be listed or created for a file."""


class FetchError(SyncEntryError):
    """A file could not be downloaded or decoded as text."""


class IndexWriteError(SyncEntryError):
    """A document could not be written to the index."""


class SyncInProgressError(DropSearchError):
    """A sync run is already in flight."""


class InvalidQueryError(DropSearchError):
    """The search term is missing or empty."""


class SearchBackendError(DropSearchError):
    """The search index failed to execute a query."""

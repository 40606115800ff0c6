from pydantic import BaseModel


class SearchHitModel(BaseModel):
    filename: str
    url: str
    lastModified: str
    score: float
    excerpt: str | None = None  # Omitted from responses when no highlight


class ErrorResponse(BaseModel):
    error: str


class SyncResponse(BaseModel):
    status: str
    root: str
    documents_found: int
    documents_indexed: int
    documents_skipped: int
    degraded_links: int
    errors: list[str]
    duration_seconds: float | None


class SyncState(BaseModel):
    source: str
    root: str
    last_sync_at: str | None = None
    documents_found: int | None = None
    documents_indexed: int | None = None
    documents_skipped: int | None = None
    degraded_links: int | None = None

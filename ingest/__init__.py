"""
Sync pipeline for dropsearch.

Components:
- enumerator: Recursive listing filtered to the document extension
- links: Shared link lookup/creation and direct-download normalization
- fetcher: Download and UTF-8 decoding
- indexer: Elasticsearch schema and idempotent upserts
- pipeline: SyncOrchestrator driving a full run

Usage:
    # Using CLI
    python -m ingest.ingest_cli --root /notes

    # Using Python
    from ingest.pipeline import create_orchestrator
    report = await create_orchestrator(storage, es_client, settings).run("/notes")
"""
from ingest.enumerator import FileEnumerator
from ingest.fetcher import ContentFetcher
from ingest.indexer import IndexedDocument, Indexer, document_id
from ingest.links import LinkResolution, LinkResolver, normalize_shared_link
from ingest.pipeline import (
    Indexed,
    Skipped,
    SyncOrchestrator,
    SyncReport,
    create_orchestrator,
)

__all__ = [
    "FileEnumerator",
    "ContentFetcher",
    "IndexedDocument",
    "Indexer",
    "document_id",
    "LinkResolution",
    "LinkResolver",
    "normalize_shared_link",
    "Indexed",
    "Skipped",
    "SyncOrchestrator",
    "SyncReport",
    "create_orchestrator",
]

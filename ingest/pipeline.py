"""
Sync pipeline: mirror remote documents into the search index.

Features:
- Idempotent upserts (same path = same document ID)
- Per-file failure isolation (a bad file is skipped, the batch continues)
- One run in flight at a time
- Sync state tracking
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone

from elasticsearch import AsyncElasticsearch

from app.config import Settings
from app.errors import AuthError, SyncInProgressError
from app.logging_config import get_logger
from connectors.base import BaseStorageClient, StorageEntry
from connectors.state_store import StateStore
from ingest.enumerator import FileEnumerator
from ingest.fetcher import ContentFetcher
from ingest.indexer import IndexedDocument, Indexer
from ingest.links import LinkResolver

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Indexed:
    """A file that was written to the index."""
    document: IndexedDocument
    degraded_link: bool = False

    @property
    def path(self) -> str:
        return self.document.path


@dataclass(frozen=True)
class Skipped:
    """A file that failed somewhere in link/fetch/index and was left out."""
    entry: StorageEntry
    reason: str

    @property
    def path(self) -> str:
        return self.entry.path


EntryOutcome = Indexed | Skipped


@dataclass
class SyncReport:
    """Outcome of a sync run."""
    root: str
    documents_found: int = 0
    outcomes: list[EntryOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None

    @property
    def indexed(self) -> list[Indexed]:
        return [o for o in self.outcomes if isinstance(o, Indexed)]

    @property
    def skipped(self) -> list[Skipped]:
        return [o for o in self.outcomes if isinstance(o, Skipped)]

    @property
    def degraded_links(self) -> int:
        return sum(1 for o in self.indexed if o.degraded_link)

    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict:
        return {
            "root": self.root,
            "documents_found": self.documents_found,
            "documents_indexed": len(self.indexed),
            "documents_skipped": len(self.skipped),
            "degraded_links": self.degraded_links,
            "errors": [f"{o.entry.name}: {o.reason}" for o in self.skipped],
            "duration_seconds": self.duration_seconds,
        }


class SyncOrchestrator:
    """
    Drives a sync run.

    ensure_schema -> list_documents -> for each entry: resolve link, fetch
    content, upsert. Schema, enumeration and auth failures abort the run;
    anything else only skips the file it happened on.
    """

    def __init__(
        self,
        enumerator: FileEnumerator,
        link_resolver: LinkResolver,
        fetcher: ContentFetcher,
        indexer: Indexer,
        state_store: StateStore | None = None,
        source: str = "dropbox",
    ):
        self.enumerator = enumerator
        self.link_resolver = link_resolver
        self.fetcher = fetcher
        self.indexer = indexer
        self.state_store = state_store
        self.source = source
        self._run_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._run_lock.locked()

    async def process_entry(self, entry: StorageEntry) -> EntryOutcome:
        """Run link -> fetch -> index for one file and tag the result."""
        try:
            link = await self.link_resolver.resolve_link(entry)
            content = await self.fetcher.fetch_text(entry)
            document = IndexedDocument.from_entry(entry, content=content, url=link.url)
            await self.indexer.upsert(document)
        except AuthError:
            raise
        except Exception as e:
            logger.error(f"Error processing file {entry.name}: {e}")
            return Skipped(entry=entry, reason=str(e))

        logger.info(f"Indexed file: {entry.name}")
        return Indexed(document=document, degraded_link=link.degraded)

    async def run(self, root: str = "") -> SyncReport:
        """
        Mirror every supported document under `root` into the index.

        Raises:
            SyncInProgressError: If another run is in flight.
            SchemaError, EnumerationError, AuthError: The run was aborted.
        """
        if self._run_lock.locked():
            raise SyncInProgressError("Sync already in progress")

        async with self._run_lock:
            report = SyncReport(root=root)
            logger.info(f"Starting sync of '{root or '/'}'")

            await self.indexer.ensure_schema()
            entries = await self.enumerator.list_documents(root)
            report.documents_found = len(entries)

            for entry in entries:
                report.outcomes.append(await self.process_entry(entry))

            report.completed_at = _utcnow()
            if self.state_store is not None:
                await asyncio.to_thread(self._record, report)

            logger.info(
                f"Sync complete: {len(report.indexed)}/{report.documents_found} indexed, "
                f"{len(report.skipped)} skipped in {report.duration_seconds:.1f}s"
            )
            if report.degraded_links:
                logger.warning(f"{report.degraded_links} files indexed with temporary links")
            return report

    def _record(self, report: SyncReport) -> None:
        self.state_store.update_state(
            source=self.source,
            root=report.root,
            patch={
                "last_sync_at": report.completed_at.isoformat(),
                "documents_found": report.documents_found,
                "documents_indexed": len(report.indexed),
                "documents_skipped": len(report.skipped),
                "degraded_links": report.degraded_links,
            },
        )


def create_orchestrator(
    storage: BaseStorageClient,
    es_client: AsyncElasticsearch,
    settings: Settings,
    state_store: StateStore | None = None,
) -> SyncOrchestrator:
    """Wire the pipeline components around one storage client and index."""
    return SyncOrchestrator(
        enumerator=FileEnumerator(storage, extension=settings.document_extension),
        link_resolver=LinkResolver(storage),
        fetcher=ContentFetcher(storage),
        indexer=Indexer(es_client, settings.elasticsearch_index),
        state_store=state_store,
        source=storage.source_type.value,
    )

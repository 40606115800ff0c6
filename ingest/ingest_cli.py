"""
Sync CLI for dropsearch.

Usage:
    python -m ingest.ingest_cli [--root /notes] [--extension .txt]

Runs one sync of the configured Dropbox folder into Elasticsearch.
"""
import argparse
import asyncio
import sys

import httpx

from app.config import settings
from app.elasticsearch_client import create_es_client
from app.errors import DropSearchError
from app.logging_config import get_logger, setup_logging
from connectors import DropboxClient, StateStore, TokenManager
from ingest.pipeline import SyncReport, create_orchestrator

logger = get_logger(__name__)


async def run_sync(root: str) -> SyncReport:
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as http_client:
        token_manager = TokenManager(
            app_key=settings.dropbox_app_key,
            app_secret=settings.dropbox_app_secret,
            refresh_token=settings.dropbox_refresh_token,
            http_client=http_client,
        )
        storage = DropboxClient(token_manager, http_client)
        es_client = create_es_client(settings)
        try:
            orchestrator = create_orchestrator(
                storage,
                es_client,
                settings,
                state_store=StateStore(settings.state_db_path),
            )
            return await orchestrator.run(root)
        finally:
            await es_client.close()


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Mirror Dropbox text documents into Elasticsearch"
    )
    parser.add_argument(
        "--root",
        type=str,
        default=settings.dropbox_root_path,
        help="Dropbox folder to sync (default: DROPBOX_ROOT_PATH or account root)",
    )
    parser.add_argument(
        "--extension",
        type=str,
        help="Filename suffix of documents to index (default: DOCUMENT_EXTENSION)",
    )
    args = parser.parse_args()

    if args.extension:
        settings.document_extension = args.extension

    setup_logging(settings.log_level)

    try:
        report = asyncio.run(run_sync(args.root))
    except DropSearchError as e:
        logger.error(f"Sync aborted: {e}")
        sys.exit(1)

    # Exit with warning if some files were skipped
    if report.skipped:
        sys.exit(2)


if __name__ == "__main__":
    main()

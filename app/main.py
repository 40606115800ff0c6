from contextlib import asynccontextmanager
from dataclasses import asdict
import secrets
import time
import logging
import os

import httpx
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from fastapi import FastAPI, HTTPException, Depends, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.elasticsearch_client import create_es_client
from app.errors import DropSearchError, SyncInProgressError
from app.logging_config import setup_logging, get_logger
from app.logging_utils import request_id_ctx, new_request_id
from app.models import ErrorResponse, SearchHitModel, SyncResponse, SyncState
from app.search_service import ClientError, Hits, SearchService
from connectors import DropboxClient, StateStore, TokenManager
from ingest.pipeline import SyncOrchestrator, create_orchestrator

logger = get_logger(__name__)


# ============== Rate Limiting ==============

limiter = Limiter(key_func=get_remote_address)


# ============== Security ==============

def verify_api_key(x_api_key: str | None = Header(None, alias="X-API-Key")):
    """
    Verify API key for protected endpoints.
    If API_KEY is not configured, authentication is disabled (for development).
    """
    if not settings.api_key:
        return True

    if not x_api_key:
        raise HTTPException(
            status_code=401,
            detail="Missing API key. Provide X-API-Key header.",
        )

    # Use constant-time comparison to prevent timing attacks
    if not secrets.compare_digest(x_api_key, settings.api_key):
        raise HTTPException(
            status_code=401,
            detail="Invalid API key.",
        )

    return True


# ============== Lifespan ==============

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the service graph, validate credentials, ensure the index and
    (optionally) run the initial sync. Any failure aborts startup.
    """
    http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    es_client = create_es_client(settings)

    token_manager = TokenManager(
        app_key=settings.dropbox_app_key,
        app_secret=settings.dropbox_app_secret,
        refresh_token=settings.dropbox_refresh_token,
        http_client=http_client,
    )
    storage = DropboxClient(token_manager, http_client)
    state_store = StateStore(settings.state_db_path)
    orchestrator = create_orchestrator(storage, es_client, settings, state_store=state_store)

    app.state.orchestrator = orchestrator
    app.state.state_store = state_store
    app.state.search_service = SearchService(
        es_client,
        settings.elasticsearch_index,
        size=settings.search_result_size,
    )

    try:
        try:
            await token_manager.obtain()
            await orchestrator.indexer.ensure_schema()
            if settings.sync_on_startup:
                await orchestrator.run(settings.dropbox_root_path)
        except DropSearchError as e:
            logger.error(f"Failed to initialize server: {e}")
            raise

        logger.info("dropsearch ready")
        yield
    finally:
        await es_client.close()
        await http_client.aclose()


app = FastAPI(title="dropsearch API", lifespan=lifespan)
setup_logging(settings.log_level)


def _sentry_before_send(event, hint):
    req = event.get("request") or {}
    # Remove request body & cookies
    req.pop("data", None)
    req.pop("cookies", None)
    headers = req.get("headers") or {}
    headers.pop("authorization", None)
    headers.pop("x-api-key", None)
    req["headers"] = headers
    event["request"] = req
    return event

sentry_dsn = os.getenv("SENTRY_DSN")
if sentry_dsn:
    sentry_sdk.init(
        dsn=sentry_dsn,
        integrations=[FastApiIntegration()],
        environment=os.getenv("SENTRY_ENVIRONMENT", "dev"),
        send_default_pii=False,
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0") or "0"),
        before_send=_sentry_before_send,
    )


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or new_request_id()
    token = request_id_ctx.set(rid)

    start = time.time()
    try:
        response = await call_next(request)
        duration_ms = int((time.time() - start) * 1000)

        response.headers["X-Request-ID"] = rid

        logging.getLogger("app.request").info(
            "%s %s -> %s (%dms)",
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            duration_ms,
        )
        return response
    finally:
        request_id_ctx.reset(token)


# ============== Middleware ==============

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# ============== Dependencies ==============

def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def get_orchestrator(request: Request) -> SyncOrchestrator:
    return request.app.state.orchestrator


def get_state_store(request: Request) -> StateStore:
    return request.app.state.state_store


# ============== Endpoints ==============

@app.get(
    "/api/search",
    response_model=list[SearchHitModel],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_search)
async def search(
    request: Request,
    q: str | None = None,
    service: SearchService = Depends(get_search_service),
):
    """Full-text search over indexed documents, best match first."""
    outcome = await service.execute(q)

    if isinstance(outcome, Hits):
        return JSONResponse(
            content=[
                SearchHitModel(**asdict(hit)).model_dump(exclude_none=True)
                for hit in outcome.hits
            ]
        )
    status_code = 400 if isinstance(outcome, ClientError) else 500
    return JSONResponse(status_code=status_code, content={"error": outcome.message})


@app.post("/api/sync", response_model=SyncResponse, dependencies=[Depends(verify_api_key)])
@limiter.limit(settings.rate_limit_sync)
async def trigger_sync(
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    """
    Re-sync the configured Dropbox folder.
    Requires API key authentication. Rate limited.

    Idempotent: re-syncing same files won't create duplicates.
    """
    try:
        report = await orchestrator.run(settings.dropbox_root_path)
    except SyncInProgressError:
        return JSONResponse(status_code=409, content={"error": "Sync already in progress"})
    except DropSearchError as e:
        logger.error(f"Sync failed: {type(e).__name__}: {e}")
        return JSONResponse(status_code=500, content={"error": "Sync failed"})

    return SyncResponse(status="completed", **report.to_dict())


@app.get("/api/sync/state", response_model=SyncState, dependencies=[Depends(verify_api_key)])
def get_sync_state(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    store: StateStore = Depends(get_state_store),
):
    """Last recorded sync state for the configured folder."""
    root = settings.dropbox_root_path
    state = store.get_state(orchestrator.source, root)

    if not state:
        raise HTTPException(status_code=404, detail="State not found")

    return SyncState(
        source=orchestrator.source,
        root=root,
        last_sync_at=state.get("last_sync_at"),
        documents_found=state.get("documents_found"),
        documents_indexed=state.get("documents_indexed"),
        documents_skipped=state.get("documents_skipped"),
        degraded_links=state.get("degraded_links"),
    )


@app.get("/health")
def health_check():
    """Health check endpoint. Returns minimal status information."""
    return {
        "status": "healthy",
    }

from __future__ import annotations

"""FastAPI application entrypoint for document retrieval."""

import logging
import time
import uuid

from fastapi import Depends, FastAPI, HTTPException, Request, status
from starlette.concurrency import run_in_threadpool

from docintel.app.dependencies import get_history_store, get_pipeline
from docintel.app.metrics import metrics_middleware, metrics_response, record_retrieval
from docintel.app.schemas import (
    QueryHistoryItem,
    QueryHistoryResponse,
    QueryRequest,
    QueryResponse,
    SourceFragment,
)
from docintel.app.security import AuthContext, require_user
from docintel.app.settings import settings
from docintel.rag.errors import (
    ConfigurationError,
    DocIntelError,
    EmbeddingError,
    InvalidArgumentError,
    NoExtractableContentError,
    NoReadyDocumentsError,
    QueryHistoryError,
)

QUERY_HISTORY_LIMIT = 50

logger = logging.getLogger(__name__)

app = FastAPI(title="DocIntel Retrieval", version="0.1.0")


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


def _http_error(exc: DocIntelError) -> HTTPException:
    """Map a core error onto the client-facing HTTP response."""
    if isinstance(exc, InvalidArgumentError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, (NoReadyDocumentsError, NoExtractableContentError)):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Nothing to search: {exc}",
        )
    if isinstance(exc, EmbeddingError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Embedding provider request failed",
        )
    if isinstance(exc, ConfigurationError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Retrieval service is misconfigured",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="RAG query failed",
    )


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    """Capture request metrics before returning the response."""
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    return metrics_response()


@app.get("/health")
async def health() -> dict[str, str]:
    """Simple health probe for uptime checks."""
    return {"status": "ok"}


@app.post("/rag/query", response_model=QueryResponse)
async def rag_query(
    request: QueryRequest,
    http_request: Request,
    auth: AuthContext = Depends(require_user),
) -> QueryResponse:
    """Return the top matching chunks across the caller's ready documents."""
    request_id = getattr(http_request.state, "request_id", str(uuid.uuid4()))
    started = time.monotonic()
    try:
        pipeline = get_pipeline()
        sources = await run_in_threadpool(
            pipeline.query,
            auth.user_id,
            request.question,
            request.k,
            request.document_id,
        )
    except DocIntelError as exc:
        log = logger.warning if isinstance(exc, InvalidArgumentError) else logger.error
        log(
            "rag_query_failed",
            extra={**exc.context(), "user_id": auth.user_id, "request_id": request_id},
        )
        record_retrieval(http_request, type(exc).__name__, time.monotonic() - started)
        raise _http_error(exc) from exc
    record_retrieval(http_request, "ok", time.monotonic() - started, sources=len(sources))
    return QueryResponse(
        question=request.question,
        request_id=request_id,
        sources=[
            SourceFragment(
                text=source.text,
                document_id=source.document_id,
                document_name=source.document_name,
                source_number=source.source_number,
                score=source.score,
            )
            for source in sources
        ],
    )


@app.get("/queries", response_model=QueryHistoryResponse)
async def list_queries(auth: AuthContext = Depends(require_user)) -> QueryHistoryResponse:
    """Return the caller's most recent queries, newest first."""
    try:
        history = get_history_store()
        if history is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Query history is not enabled",
            )
        rows = await run_in_threadpool(history.list_for_user, auth.user_id, QUERY_HISTORY_LIMIT)
    except QueryHistoryError as exc:
        logger.error("query_history_list_failed", extra={**exc.context(), "user_id": auth.user_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load query history",
        ) from exc
    return QueryHistoryResponse(queries=[QueryHistoryItem(**row) for row in rows])

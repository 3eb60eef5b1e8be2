"""Ledger Sync - FastAPI Application."""

import asyncio
import time
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import structlog
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_sync import __version__
from ledger_sync.config import settings
from ledger_sync.database import engine, get_db, init_db
from ledger_sync.errors import (
    FeedAuthenticationError,
    FeedRateLimitError,
    FeedUnavailableError,
    LedgerSyncError,
    NotFoundError,
    PartialBatchFailure,
    ValidationError,
)
from ledger_sync.logger import configure_logging, get_logger
from ledger_sync.routers import feed, ledger, recurring, staging
from ledger_sync.schemas.staging import BulkOperationResponse
from ledger_sync.services.scheduler import run_sync_scheduler

# Initialize logging early
configure_logging()
logger = get_logger(__name__)


def _init_otel_instrumentation() -> None:
    """Initialize OpenTelemetry auto-instrumentation for FastAPI, SQLAlchemy, and HTTPX."""
    if not settings.otel_exporter_otlp_endpoint:
        return

    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
        from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

        FastAPIInstrumentor.instrument()
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
        HTTPXClientInstrumentor().instrument()

        logger.info("OTEL instrumentation initialized", components=["fastapi", "sqlalchemy", "httpx"])
    except Exception:  # pragma: no cover - optional dependency
        logger.warning("OTEL instrumentation not available", exc_info=True)


_init_otel_instrumentation()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - init DB and start the scheduler."""
    await init_db()
    stop_event = asyncio.Event()
    scheduler_task: asyncio.Task[None] | None = None
    if settings.scheduler_enabled:
        scheduler_task = asyncio.create_task(run_sync_scheduler(stop_event))
    logger.info("Application started", version=__version__, scheduler=settings.scheduler_enabled)
    yield
    stop_event.set()
    if scheduler_task is not None:
        scheduler_task.cancel()
        with suppress(asyncio.CancelledError):
            await scheduler_task
    logger.info("Application shutting down")


app = FastAPI(
    title="Ledger Sync API",
    description="Transaction reconciliation and deduplication for a personal-finance ledger",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def logging_middleware(request: Request, call_next: Any) -> Response:
    """Middleware to inject Request-ID and log request details."""
    request_id = request.headers.get("X-Request-ID", str(uuid4()))

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    start_time = time.perf_counter()
    try:
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        logger.info(
            "HTTP Request",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response
    except Exception as exc:
        duration = time.perf_counter() - start_time
        logger.exception(
            "HTTP Request Failed",
            duration_ms=round(duration * 1000, 2),
            error=str(exc),
        )
        raise


def _error_body(detail: str) -> dict[str, Any]:
    return {
        "detail": detail,
        "request_id": structlog.contextvars.get_contextvars().get("request_id"),
    }


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_error_body(str(exc)))


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=_error_body(str(exc)))


@app.exception_handler(FeedAuthenticationError)
async def feed_auth_handler(request: Request, exc: FeedAuthenticationError) -> JSONResponse:
    logger.warning("Bank feed authentication failed", error=str(exc))
    return JSONResponse(status_code=502, content=_error_body(str(exc)))


@app.exception_handler(FeedRateLimitError)
async def feed_rate_limit_handler(request: Request, exc: FeedRateLimitError) -> JSONResponse:
    headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after is not None else None
    return JSONResponse(status_code=429, content=_error_body(str(exc)), headers=headers)


@app.exception_handler(FeedUnavailableError)
async def feed_unavailable_handler(request: Request, exc: FeedUnavailableError) -> JSONResponse:
    logger.warning("Bank feed unavailable", error=str(exc))
    return JSONResponse(status_code=503, content=_error_body(str(exc)))


@app.exception_handler(PartialBatchFailure)
async def partial_batch_handler(request: Request, exc: PartialBatchFailure) -> JSONResponse:
    body = BulkOperationResponse.model_validate(exc.result).model_dump(mode="json")
    return JSONResponse(status_code=207, content=body)


@app.exception_handler(LedgerSyncError)
async def ledger_error_handler(request: Request, exc: LedgerSyncError) -> JSONResponse:
    logger.error("Unhandled ledger error", error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(status_code=500, content=_error_body(str(exc)))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler to ensure JSON response."""
    if settings.debug:
        detail = str(exc)
        trace = traceback.format_exc()
    else:
        detail = "An internal server error occurred. Please try again later."
        trace = None

    return JSONResponse(
        status_code=500,
        content={
            "detail": detail,
            "trace": trace,
            "request_id": structlog.contextvars.get_contextvars().get("request_id"),
        },
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "X-User-Id", "X-Request-ID"],
)

app.include_router(ledger.router)
app.include_router(staging.router)
app.include_router(feed.router)
app.include_router(recurring.router)


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """Report database reachability."""
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as exc:
        logger.warning("Health check database probe failed", error=str(exc))
        database = "unavailable"

    healthy = database == "ok"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "database": database,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )

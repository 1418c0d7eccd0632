"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from bucketindex import __version__
from bucketindex.api.health import router as health_router
from bucketindex.api.index import router as index_router
from bucketindex.config import Settings
from bucketindex.database import create_engine, ensure_tables
from bucketindex.exceptions import ListingError, ScanInProgressError
from bucketindex.services.reconcile_service import ScanGate
from bucketindex.storage.base import MemoryObjectLister, ObjectLister
from bucketindex.storage.s3_lister import S3ObjectLister

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)


def create_lister(settings: Settings) -> ObjectLister:
    """Build the object lister for the configured bucket."""
    if not settings.s3_bucket:
        logger.warning("No S3 bucket configured; serving an empty listing")
        return MemoryObjectLister()
    return S3ObjectLister.from_settings(settings)


async def _startup_refresh(
    session_factory: async_sessionmaker[AsyncSession],
    lister: ObjectLister,
    gate: ScanGate,
    settings: Settings,
) -> None:
    """Bring the index up to date before serving requests."""
    from bucketindex.services.index_store import IndexStore
    from bucketindex.services.reconcile_service import refresh_index

    async with gate.hold("refresh"), session_factory() as session:
        result = await refresh_index(IndexStore(session), lister, prefix=settings.s3_prefix)
    logger.info(
        "Startup refresh: added %d, updated %d, removed %d",
        result.added,
        result.updated,
        result.removed,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan: startup and shutdown."""
    settings: Settings = app.state.settings
    settings.validate_runtime()
    _configure_logging(settings.debug)
    logger.info("Starting bucket index (debug=%s)", settings.debug)

    # Ensure database directory exists
    db_url = settings.database_url
    if db_url.startswith("sqlite"):
        db_path = db_url.split("///", 1)[-1] if "///" in db_url else None
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    try:
        engine, session_factory = create_engine(settings)
        app.state.engine = engine
        app.state.session_factory = session_factory
    except Exception as exc:
        logger.critical(
            "Failed to initialize database: %s. Check database path and permissions.", exc
        )
        raise

    try:
        await ensure_tables(engine)
    except Exception as exc:
        logger.critical("Failed to create database schema: %s.", exc)
        raise

    try:
        lister = create_lister(settings)
    except Exception as exc:
        logger.critical("Failed to create object store client: %s.", exc)
        raise
    app.state.lister = lister
    app.state.scan_gate = ScanGate()

    if settings.index_refresh_on_startup and settings.s3_bucket:
        try:
            await _startup_refresh(session_factory, lister, app.state.scan_gate, settings)
        except ListingError as exc:
            # Serve the existing index; the next triggered refresh will retry.
            logger.error("Startup refresh failed: %s", exc)

    yield

    try:
        await engine.dispose()
    except Exception as exc:
        logger.error("Error during engine disposal: %s", exc, exc_info=True)

    logger.info("Bucket index stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    docs_enabled = settings.debug or settings.expose_docs

    app = FastAPI(
        title="Bucket Index",
        description="Searchable local index of a remote object store",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = settings

    app.add_middleware(GZipMiddleware, minimum_size=500)

    cors_origins = (
        settings.cors_origins
        if settings.cors_origins
        else (["http://localhost:5173", "http://localhost:8000"] if settings.debug else [])
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(index_router)

    # Global exception handlers

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = []
        for err in exc.errors():
            loc = err.get("loc", ())
            field = str(loc[-1]) if loc else "unknown"
            errors.append({"field": field, "message": err.get("msg", "Invalid value")})
        logger.warning(
            "RequestValidationError in %s %s: %s",
            request.method,
            request.url.path,
            errors,
        )
        return JSONResponse(status_code=422, content={"detail": errors})

    @app.exception_handler(ScanInProgressError)
    async def scan_in_progress_handler(
        request: Request, exc: ScanInProgressError
    ) -> JSONResponse:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ListingError)
    async def listing_error_handler(request: Request, exc: ListingError) -> JSONResponse:
        logger.error(
            "ListingError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=502,
            content={"detail": "Object listing failed"},
        )

    @app.exception_handler(OperationalError)
    async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
        logger.error(
            "OperationalError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=503,
            content={"detail": "Database temporarily unavailable"},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.error("ValueError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        message = str(exc) or "Invalid value"
        return JSONResponse(
            status_code=422,
            content={"detail": message},
        )

    return app


app = create_app()


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    settings: Settings = app.state.settings
    uvicorn.run(
        "bucketindex.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

"""
FastAPI application entrypoint for the back-office service.

This module wires together:
- Logging configuration (file-based under LOG_DIR)
- CORS and request logging middleware
- Error translation for transfer and storage failures
- Domain routers under backoffice.api (accounts, transfers, insights)
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from backoffice import __version__
from backoffice.api.accounts import router as accounts_router
from backoffice.api.insights import router as insights_router
from backoffice.api.transfers import router as transfers_router
from backoffice.config import get_settings
from backoffice.db.session import DATABASE_URL, create_schema, engine
from backoffice.exceptions import StorageError, TransferError
from backoffice.logging_config import get_logger, setup_logging

# Configure logging before creating the app
setup_logging()
logger = get_logger("backoffice")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Back-office starting up")
    settings = get_settings()
    if not settings.admin_token:
        logger.warning("ADMIN_TOKEN is not set; admin endpoints will refuse every request")
    if settings.auto_create_schema:
        await create_schema()
    yield
    try:
        await engine.dispose()
    except Exception:
        logger.exception("Error disposing engine on shutdown")
    logger.info("Back-office shutting down")


app = FastAPI(title="Bank Back-Office API", version=__version__, lifespan=lifespan)

# CORS (portals are served from another origin)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Lightweight request logger to help trace portal traffic.
    """
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "HTTP %s %s from %s -> %s (%.1f ms)",
        request.method,
        request.url.path,
        request.client.host if request.client else "?",
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


@app.exception_handler(TransferError)
async def transfer_error_handler(request: Request, exc: TransferError):
    logger.info("Request %s rejected (%s): %s", request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.http_status, content={"error": exc.message})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Service temporarily unavailable"})


@app.get("/api/health")
async def health():
    """
    Simple health check endpoint.
    """
    return {"status": "healthy"}


# Log the effective database (without credentials) once at import time
logger.info("Effective DATABASE_URL: %s", DATABASE_URL.split("@")[-1])

# Include domain routers
app.include_router(accounts_router, prefix="/api")
app.include_router(transfers_router, prefix="/api")
app.include_router(insights_router, prefix="/api")

"""
api/main.py -- FastAPI application entry point for Brewhouse.

Exposes the beer catalog and session-based authentication to a
single-page-application client.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for the SPA origins. allow_credentials
                       is required: the session cookie only travels on
                       credentialed cross-origin requests.
  2. log_requests   -- one log line per request with status and latency.

Lifespan handles startup (stores, session manager, image uploader, session
purge task) and shutdown (cancel purge task, dispose engines) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException

from api.models import HealthResponse, MessageResponse
from api.routes.auth import router as auth_router
from api.routes.beers import router as beers_router
from auth.manager import SessionManager
from auth.sessions import SessionStore
from auth.store import UserStore
from beers.store import BeerStore
from beers.uploader import CloudinaryUploader
from core.config import get_settings
from core.errors import GENERIC_ERROR_MESSAGE, ServiceError

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("brewhouse.api")

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval: int) -> None:
    """Delete expired sessions every `interval` seconds.

    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine cleanly. A failed purge is logged
    and retried on the next tick; expired rows are invisible to readers anyway.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            await run_in_threadpool(app.state.session_store.purge_expired)
        except Exception:
            logger.exception("Session purge failed")


def _build_uploader():
    settings = get_settings()
    if not settings.uploads_enabled:
        logger.warning("Cloudinary credentials not set -- beer images will use the default URL")
        return None
    return CloudinaryUploader(
        settings.cloudinary_cloud_name,
        settings.cloudinary_api_key,
        settings.cloudinary_api_secret,
        folder=settings.cloudinary_folder,
    )


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. The purge task starts last because it references the session
    store.
    """
    settings = get_settings()
    logger.info("Brewhouse API starting up")
    app.state.user_store = UserStore()
    app.state.session_store = SessionStore()
    app.state.session_manager = SessionManager(app.state.user_store, app.state.session_store)
    app.state.beers = BeerStore()
    app.state.uploader = _build_uploader()
    logger.info("Stores initialized")
    app.state.purge_task = asyncio.create_task(_purge_loop(app, settings.session_purge_interval_seconds))

    yield

    # Shutdown
    app.state.purge_task.cancel()
    if app.state.uploader is not None:
        app.state.uploader.close()
    app.state.beers.close()
    app.state.session_store.close()
    app.state.user_store.close()
    logger.info("Brewhouse API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Brewhouse API",
    description="Beer catalog with session-based authentication for a single-page app.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(beers_router, tags=["Beers"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same {"message": ...} envelope so the SPA can show
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render ValidationError / AuthenticationError / NotFoundError / InternalError."""
    return JSONResponse(
        status_code=exc.status_code,
        content=MessageResponse(message=exc.message).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 when the request body cannot be parsed into the expected shape."""
    return JSONResponse(
        status_code=422,
        content=MessageResponse(message="Request validation failed.").model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return {"message": ...} for HTTP exceptions, including unknown routes (404) and 405.

    Registered for the Starlette base class so routing errors are covered too;
    FastAPI's HTTPException is a subclass.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=MessageResponse(message=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    The client receives only the generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=MessageResponse(message=GENERIC_ERROR_MESSAGE).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)

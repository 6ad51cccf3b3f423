"""
CatTrack Backend: FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers,
       builds the AuthService and stores it on app.state.
Who:   uvicorn (uvicorn cattrack.main:app) and the test client.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Rate Limit → Request ID → Logging →        │
    │               GZip → CORS                                │
    │                                                          │
    │  Routes:      /api/v1/cats   /api/v1/users               │
    │               /api/v1/auth   /uploads   /health          │
    │                                                          │
    │  app.state.auth_service: AuthService                     │
    │                                                          │
    │  Exception Handlers:                                     │
    │    CatTrackError         → exc.status_code               │
    │    RequestValidationError→ 400                           │
    │    Exception             → 400                           │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, storage directory
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from cattrack import __version__
from cattrack.config import settings
from cattrack.database import dispose_engine
from cattrack.exceptions import CatTrackError, RateLimitExceededError, ValidationError
from cattrack.middleware.logging import RequestLoggingMiddleware
from cattrack.middleware.rate_limit import RateLimitMiddleware
from cattrack.middleware.request_id import RequestIDMiddleware, request_id_var
from cattrack.routes import auth, cats, files, health, users
from cattrack.services.auth_service import AuthService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once at startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request chatter from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("CatTrack Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Startup continues; /health still answers
        logger.error("Configuration error: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("CatTrack Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: dict = None,
    headers: dict = None,
    request_id: str = None,
) -> JSONResponse:
    if request_id is None:
        request_id = request_id_var.get("")
    content = {"error": error, "message": message, "request_id": request_id}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the JSON error envelope.

    Handler hierarchy:
        CatTrackError           → exc.status_code / exc.error_code
        RequestValidationError  → 400 validation_error (not FastAPI's 422)
        Exception               → 400 bad_request

    Context is returned as `details` for 4xx errors only; server-side
    failures log their context and return the message alone.
    """

    @app.exception_handler(CatTrackError)
    async def handle_cattrack_error(request: Request, exc: CatTrackError):
        rid = request_id_var.get("")
        headers = None
        if isinstance(exc, RateLimitExceededError):
            headers = {"Retry-After": str(exc.retry_after)}

        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
            details = None
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
            details = exc.context

        return _error_response(
            exc.status_code, exc.error_code, exc.message, details=details, headers=headers
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        error = ValidationError.from_errors(exc.errors())
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), error.message)
        return _error_response(400, error.error_code, error.message, details=error.context)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Runs in ServerErrorMiddleware, outside RequestIDMiddleware's context
        rid = request_id_var.get("") or getattr(request.state, "request_id", "")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _error_response(
            400, "bad_request", "The request could not be processed.", request_id=rid
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns a new instance on every call, each with its own AuthService
    and rate limiter state.
    """
    app = FastAPI(
        title="CatTrack API",
        description=(
            "Users and their geotagged cats: registration, login, cat CRUD with "
            "image upload, owner and admin authorization, bounding-box search."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.auth_service = AuthService(
        secret_key=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expire_minutes=settings.access_token_expire_minutes,
        hash_method=settings.password_hash_method,
    )

    # ── Middleware ────────────────────────────────────────────────────────
    # Executed in reverse order of addition: RequestID runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(cats.router)
    app.include_router(users.router)
    app.include_router(auth.router)
    app.include_router(files.router)
    app.include_router(health.router)

    return app


# uvicorn cattrack.main:app
app = create_app()

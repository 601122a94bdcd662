"""
LittleNest Backend: FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       lifespan() handles startup checks and engine disposal.
Who:   uvicorn (uvicorn littlenest.main:app) and the route tests.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware Chain:                                   │
    │  ┌────────────┐ ┌──────────┐ ┌─────────┐ ┌─────────┐ │
    │  │ Rate Limit │→│ Req ID   │→│ Logging │→│GZip+CORS│ │
    │  └────────────┘ └──────────┘ └─────────┘ └─────────┘ │
    │                                                      │
    │  Routes:                                             │
    │  ┌────────────┐ ┌────────────┐ ┌──────────────────┐  │
    │  │ /api/names │ │ /api/blogs │ │ / /health /media │  │
    │  └────────────┘ └────────────┘ └──────────────────┘  │
    │                                                      │
    │  Exception Handlers:                                 │
    │  400 Validation  401 Auth  403 Permission  404       │
    │  409 Duplicate   429 RateLimit  500 Storage/DB       │
    └──────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from littlenest import __version__
from littlenest.config import settings
from littlenest.database import dispose_engine
from littlenest.exceptions import (
    AuthenticationError,
    DatabaseError,
    DuplicateKeyError,
    FileStorageError,
    LittleNestError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    ValidationError,
)
from littlenest.middleware.logging import RequestLoggingMiddleware
from littlenest.middleware.rate_limit import RateLimitMiddleware
from littlenest.middleware.request_id import RequestIDMiddleware, request_id_var
from littlenest.routes import blogs, names, system

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging once for the whole process.

    Format: 2026-10-19T12:00:00 [INFO] littlenest.access: GET /api/names/top 200 ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("LittleNest Backend %s starting up (%s)...", __version__, settings.environment)

    # Misconfiguration is logged, not fatal, so /health can still report it
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Image storage: %s (served at %s)", storage.resolve(), settings.media_url_prefix)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("LittleNest Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

# Client errors: message and context are safe to return
CLIENT_ERRORS = (
    (ValidationError, 400, "validation_error"),
    (AuthenticationError, 401, "authentication_required"),
    (PermissionDeniedError, 403, "forbidden"),
    (NotFoundError, 404, "not_found"),
    (DuplicateKeyError, 409, "conflict"),
)


def _error_body(error: str, message: str, details=None) -> dict:
    return {
        "success": False,
        "error": error,
        "message": message,
        "details": details or None,
        "request_id": request_id_var.get("") or None,
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP status codes and error bodies.

    Server-side failures (storage, database, anything unexpected) never
    expose their context in the response; it is logged instead.
    """

    def client_error_handler(status_code: int, error: str):
        async def handler(request: Request, exc: LittleNestError) -> JSONResponse:
            logger.warning(
                "[%s] %s on %s %s: %s",
                request_id_var.get(""), error, request.method, request.url.path, exc.message,
            )
            return JSONResponse(
                status_code=status_code,
                content=_error_body(error, exc.message, exc.context),
            )
        return handler

    for exc_class, status_code, error in CLIENT_ERRORS:
        app.add_exception_handler(exc_class, client_error_handler(status_code, error))

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=429,
            content=_error_body("rate_limit_exceeded", exc.message, exc.context),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("[%s] File storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="LittleNest API",
        description=(
            "Baby-name lookup, search and recommendations with derived numerology and "
            "letter analysis, plus parenting blog posts."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in reverse order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS
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
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(names.admin_router)
    app.include_router(names.router)
    app.include_router(blogs.router)
    app.include_router(system.router)

    return app


app = create_app()

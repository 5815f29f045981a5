"""
Penpost Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   `create_app(settings)` validates configuration, builds the database
       handle and the services, stores them on `app.state`, and registers
       middleware, exception handlers and routers.
Who:   uvicorn (`penpost.main:app`), the `penpost` console script, and tests
       (which call `create_app` with their own Settings).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────┐ ┌────────┐ ┌────────────┐ ┌────────────┐  │
    │  │ CORS │→│ Req ID │→│ Access Log │→│ Rate Limit │  │
    │  └──────┘ └────────┘ └────────────┘ └────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────┐ ┌──────────┐ ┌────────────┐ ┌──────┐  │
    │  │/api/auth │ │/api/posts│ │/api/categ. │ │/uplo.│  │
    │  └──────────┘ └──────────┘ └────────────┘ └──────┘  │
    │                                                     │
    │  app.state: settings, database, auth_service,       │
    │             post_service, category_service,         │
    │             file_service                            │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    create_app:  ConfigurationError if JWT_SECRET is missing (process stops)
    Startup:     logging → wait for database (bounded retries) → create tables
    Shutdown:    dispose database engine
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from penpost import __version__
from penpost.config import Settings, get_settings
from penpost.database import Database
from penpost.exceptions import (
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    PenpostError,
    PermissionDeniedError,
    ValidationError,
)
from penpost.logging_config import setup_logging
from penpost.middleware.logging import RequestLoggingMiddleware
from penpost.middleware.rate_limit import RateLimitMiddleware
from penpost.middleware.request_id import RequestIDMiddleware, request_id_var
from penpost.routes import auth, categories, health, posts, uploads
from penpost.schemas.common import format_validation_errors
from penpost.services.auth_service import AuthService
from penpost.services.category_service import CategoryService
from penpost.services.file_service import FileService
from penpost.services.post_service import PostService

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "An internal error occurred. Please try again later."


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup sequence:
        1. Setup logging
        2. Wait for the database (tenacity retries) and create missing tables
        3. Log successful startup

    Shutdown sequence:
        1. Dispose database engine (close all pooled connections)
    """
    settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Penpost Backend starting up...")

    await app.state.database.connect()

    logger.info("Upload directory: %s", app.state.file_service.upload_dir)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Penpost Backend shutting down...")
    await app.state.database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, **extra) -> dict:
    body = {"error": error, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    body["request_id"] = request_id_var.get("") or None
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        ValidationError / RequestValidationError → 400
        AuthenticationError     → 401 (+ WWW-Authenticate: Bearer)
        PermissionDeniedError   → 403
        NotFoundError           → 404
        ConflictError           → 409
        InternalError (+ DatabaseError, FileStorageError) → 500, generic message
        PenpostError (base)     → 500
        Exception (fallback)    → 500

    429 responses are built by RateLimitMiddleware itself, which runs
    outside the routing layer these handlers cover.

    Responses never carry stack traces, SQL or file paths; those are logged.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, errors=exc.errors),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = format_validation_errors(exc.errors())
        message = errors[0]["message"] if errors else "Validation failed"
        logger.warning("[%s] Request validation error: %s", request_id_var.get(""), errors)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", message, errors=errors),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        logger.info("[%s] Authentication failed: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=401,
            content=_error_body("authentication_error", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        return JSONResponse(
            status_code=403,
            content=_error_body("permission_denied", exc.message),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content=_error_body("conflict", exc.message),
        )

    @app.exception_handler(InternalError)
    async def handle_internal_error(request: Request, exc: InternalError):
        logger.error(
            "[%s] %s: %s | Context: %s",
            request_id_var.get(""),
            type(exc).__name__,
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", GENERIC_SERVER_ERROR),
        )

    @app.exception_handler(PenpostError)
    async def handle_penpost_error(request: Request, exc: PenpostError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", GENERIC_SERVER_ERROR),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: generic 500 with a request ID; the stack trace goes to the log only."""
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
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

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Explicit configuration; defaults to `get_settings()`.

    Raises:
        ConfigurationError: JWT_SECRET is missing or a placeholder.
    """
    settings = settings or get_settings()
    settings.validate_required()

    app = FastAPI(
        title="Penpost API",
        description=(
            "Blog API: posts with optional images, categories, and token-based "
            "user authentication."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Application objects ───────────────────────────────────────────────
    file_service = FileService(settings.upload_dir, settings.max_upload_size)
    app.state.settings = settings
    app.state.database = Database(settings)
    app.state.file_service = file_service
    app.state.auth_service = AuthService(settings)
    app.state.post_service = PostService(file_service)
    app.state.category_service = CategoryService()

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: CORS → RequestID → Logging → RateLimit → GZip
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    # Outermost, so 429s from the rate limiter carry CORS headers too
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(posts.router)
    app.include_router(categories.router)
    app.include_router(uploads.router)
    app.include_router(health.router)

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn on BACKEND_HOST:BACKEND_PORT."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "penpost.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn imports `penpost.main:app`
app = create_app()

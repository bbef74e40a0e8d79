"""
PIEM Backend — FastAPI Application Factory
===========================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (`uvicorn piem.main:app`) and by `python -m piem`.
When:  Once at server startup; tests build their own instance.

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware Chain:                                           │
    │  ┌────────┐ ┌─────────┐ ┌──────────┐ ┌─────────┐ ┌────────┐  │
    │  │ Req ID │→│ Logging │→│ Security │→│ Session │→│GZip/CORS│ │
    │  └────────┘ └─────────┘ └──────────┘ └─────────┘ └────────┘  │
    │                                                              │
    │  Routes:                                                     │
    │  /users  /categories  /inventory  /supplier  /health  /      │
    │  /login  /github/callback  /logout   (GitHub OAuth only)     │
    │                                                              │
    │  Exception Handlers:                                         │
    │  PiemError→status │ RequestValidation→400 │ 404 route │ 500   │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration
    3. Connect the document store (retried) and create unique indexes
    4. Publish the store on app.state

    Shutdown:
    1. Close the Motor client
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from piem import __version__
from piem.config import settings
from piem.database import MongoStore
from piem.exceptions import PiemError
from piem.middleware.logging import RequestLoggingMiddleware
from piem.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from piem.middleware.security_headers import SecurityHeadersMiddleware
from piem.routes import auth, categories, health, inventory, suppliers, users
from piem.validation import format_validation_errors

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers chatty at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the document store for the process lifetime.

    A store already placed on `app.state` (tests) is used as-is and left
    open on shutdown.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("PIEM Backend %s starting up (environment=%s)", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        raise

    owns_store = getattr(app.state, "store", None) is None
    if owns_store:
        store = MongoStore.from_settings()
        await store.connect()
        app.state.store = store
    store = app.state.store

    if settings.mongodb_create_indexes:
        await store.ensure_indexes()

    if not settings.github_oauth_enabled:
        logger.info("GitHub OAuth not configured; all sessions are anonymous")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.port)
    logger.info("API docs: http://%s:%d/api-docs", settings.backend_host, settings.port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("PIEM Backend shutting down...")
    if owns_store:
        store.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, content: dict) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content={"success": False, **content})
    rid = request_id_var.get("")
    if rid:
        response.headers[REQUEST_ID_HEADER] = rid
    return response


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error envelopes.

    Handler hierarchy:
        PiemError subclasses     → their status_code (400/401/403/404/409/500)
        RequestValidationError   → 400 {message: "Validation failed", errors}
        StarletteHTTPException   → 404 route-not-found, else its status
        Exception (fallback)     → 500 generic message

    Internal details (driver messages, tracebacks) are logged server-side
    and only echoed in `error` outside production.
    """

    @app.exception_handler(PiemError)
    async def handle_piem_error(request: Request, exc: PiemError):
        rid = request_id_var.get("")
        content = {"message": exc.message}
        errors = getattr(exc, "errors", None)
        if errors:
            content["errors"] = errors

        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
            if not settings.is_production and exc.context.get("original_error"):
                content["error"] = exc.context["original_error"]
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return _error_response(exc.status_code, content)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = format_validation_errors(exc.errors())
        logger.warning(
            "[%s] Validation failed on %s %s: %s",
            request_id_var.get(""),
            request.method,
            request.url.path,
            ", ".join(e["field"] for e in errors),
        )
        return _error_response(400, {"message": "Validation failed", "errors": errors})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            return _error_response(
                404,
                {
                    "message": f"Route not found: {request.method} {request.url.path}",
                    "suggestion": "See /api-docs for the available endpoints",
                },
            )
        return _error_response(exc.status_code, {"message": str(exc.detail)})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        content = {"message": "An unexpected error occurred. Please try again later."}
        if not settings.is_production:
            content["error"] = str(exc)
        return _error_response(500, content)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="Personal Inventory & Expenses Manager (PIEM) API",
        description=(
            "CRUD API for users, categories, inventory items and suppliers. "
            "Sign in with GitHub at /login when OAuth is configured."
        ),
        version=__version__,
        docs_url="/api-docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → Security → Session → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=settings.is_production,
    )
    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(categories.router)
    app.include_router(inventory.router)
    app.include_router(suppliers.router)

    if settings.github_oauth_enabled:
        app.include_router(auth.build_auth_router(auth.build_oauth()))

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()

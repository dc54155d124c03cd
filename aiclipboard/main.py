"""
AI Clipboard Backend — FastAPI Application Factory
====================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
       Services are built once in the lifespan (or injected by the caller)
       and stored on app.state.container.
Who:   Called by uvicorn (uvicorn aiclipboard.main:app) and by the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────────┐ ┌──────────────┐ ┌──────────────────┐  │
    │  │  Request ID  │→│   Logging    │→│  GZip / CORS     │  │
    │  └──────────────┘ └──────────────┘ └──────────────────┘  │
    │                                                          │
    │  Routes:                                                 │
    │  /api/items  /api/stats  /api/settings                   │
    │  /api/subscription  /api/export/{format}  /health        │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation→400  Gate→403  NotFound→404  Duplicate→409   │
    │  Quota→429  Storage→500  Provider→502                    │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → build services → load persisted state
    Shutdown: log only (state is saved on every change)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from aiclipboard import __version__
from aiclipboard.config import settings
from aiclipboard.dependencies import ServiceContainer, build_container
from aiclipboard.exceptions import (
    ClipboardAIError,
    DuplicateItemError,
    GateError,
    NotFoundError,
    ProviderError,
    QuotaExceededError,
    StorageError,
    ValidationError,
)
from aiclipboard.middleware.logging import RequestLoggingMiddleware
from aiclipboard.middleware.request_id import RequestIDMiddleware, request_id_var
from aiclipboard.routes import export, health, items, subscription
from aiclipboard.routes import settings as settings_routes

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

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

    # SDK transports log every request at INFO
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("AI Clipboard Backend %s starting up...", __version__)

    if getattr(app.state, "container", None) is None:
        container = build_container(settings)
        await container.load()
        app.state.container = container

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("AI Clipboard Backend shutting down...")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int, error: str, exc: ClipboardAIError, include_details: bool = True
) -> JSONResponse:
    content = {
        "error": error,
        "message": exc.message,
        "request_id": request_id_var.get(""),
    }
    if include_details:
        content["details"] = exc.context
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler hierarchy:
        ValidationError       → 400 Bad Request
        GateError             → 403 Forbidden (model / format not in tier)
        QuotaExceededError    → 429 Too Many Requests
        NotFoundError         → 404 Not Found
        DuplicateItemError    → 409 Conflict
        ProviderError         → 502 Bad Gateway
        StorageError          → 500, generic message
        ClipboardAIError      → 500
        Exception             → 500, stack trace logged server-side only
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc)

    @app.exception_handler(GateError)
    async def handle_gate_error(request: Request, exc: GateError):
        logger.info("[%s] Not allowed on tier %s: %s", request_id_var.get(""), exc.tier, exc.message)
        return _error_response(403, "not_allowed", exc)

    @app.exception_handler(QuotaExceededError)
    async def handle_quota_exceeded(request: Request, exc: QuotaExceededError):
        return _error_response(429, "quota_exceeded", exc)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc, include_details=False)

    @app.exception_handler(DuplicateItemError)
    async def handle_duplicate(request: Request, exc: DuplicateItemError):
        return _error_response(409, "duplicate_item", exc)

    @app.exception_handler(ProviderError)
    async def handle_provider_error(request: Request, exc: ProviderError):
        logger.error("[%s] Provider error: %s", request_id_var.get(""), exc.message)
        return _error_response(502, "provider_error", exc)

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        rid = request_id_var.get("")
        logger.error("[%s] Storage error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(500, "server_error", exc, include_details=False)

    @app.exception_handler(ClipboardAIError)
    async def handle_app_error(request: Request, exc: ClipboardAIError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(500, "server_error", exc, include_details=False)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Pre-built services (tests). When omitted, the lifespan
                   builds them from `settings` and loads persisted state.
    """
    app = FastAPI(
        title="AI Clipboard API",
        description=(
            "Captures clipboard text, analyzes it with OpenAI, Gemini or a local "
            "mock, and keeps a searchable, exportable history."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.container = container

    # Middleware executes in reverse order of addition
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(items.router)
    app.include_router(settings_routes.router)
    app.include_router(subscription.router)
    app.include_router(export.router)
    app.include_router(health.router)

    return app


app = create_app()

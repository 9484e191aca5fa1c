"""
User Service — FastAPI Application Factory
===========================================

What:  Creates and configures the FastAPI application and runs it.
How:   create_app(settings) builds every collaborator explicitly, stores them
       on `app.state`, wires middleware, exception handlers and routes.
       run() is the process entry point: load config → build app → uvicorn.
Who:   `python -m user_service`, the `user-service` console script, or
       `uvicorn user_service.main:create_app --factory`.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────────┐ ┌─────────────────┐  │
    │  │ Req ID   │→│  Logging     │→│  CORS           │  │
    │  └──────────┘ └──────────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌───────────────┐ ┌───────────────┐                │
    │  │ POST /users   │ │ GET /users    │                │
    │  └───────────────┘ └───────────────┘                │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Validation→400 │ Upload/Publish/Query→500    │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Open a database connection and ping it (failure aborts startup)
    2. Log startup complete

    Shutdown:
    1. Dispose the database engine (close all connections)
    2. Log shutdown complete
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from user_service import __version__
from user_service.config import Settings, load_settings
from user_service.database import UserStore
from user_service.exceptions import (
    PublishError,
    StorageQueryError,
    UploadError,
    UserServiceError,
    ValidationError,
)
from user_service.middleware.logging import RequestLoggingMiddleware
from user_service.middleware.request_id import (
    RequestIDMiddleware,
    internal_error_body,
    request_id_var,
)
from user_service.routes import users
from user_service.services.blob_service import BlobUploader
from user_service.services.queue_service import QueuePublisher
from user_service.services.user_service import UserService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure logging for the entire process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once by run() before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # Per-request access lines come from RequestLoggingMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    # The Azure SDKs log every HTTP exchange at INFO
    logging.getLogger("azure").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the store on startup, release it on shutdown.

    StorageConnectError from connect() is not caught: Starlette reports
    lifespan.startup.failed and uvicorn exits without serving.
    """
    store: UserStore = app.state.store

    logger.info("=" * 60)
    logger.info("User service starting up...")

    await store.connect()

    settings: Settings = app.state.settings
    logger.info(
        "Server ready at http://%s:%d (CORS origin: %s)",
        settings.server.host,
        settings.server.port,
        settings.server.cors_origin,
    )
    logger.info("=" * 60)

    yield

    logger.info("User service shutting down...")
    await store.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _server_error(exc: UserServiceError, label: str) -> JSONResponse:
    rid = request_id_var.get("")
    # Full context server-side only; the body carries the fixed message
    logger.error("[%s] %s: %s | Context: %s", rid, label, exc.message, exc.context)
    return JSONResponse(
        status_code=500,
        content={
            "error": "server_error",
            "message": exc.message,
            "request_id": rid,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP responses.

    Handler hierarchy:
        ValidationError    → 400 Bad Request
        UploadError        → 500 Internal Server Error
        PublishError       → 500 Internal Server Error
        StorageQueryError  → 500 Internal Server Error
        UserServiceError   → 500 Internal Server Error (catch-all for custom)
        Exception          → 500 Internal Server Error (unexpected errors)

    Responses never include causes, SQL, or connection details.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(UploadError)
    async def handle_upload_error(request: Request, exc: UploadError):
        return _server_error(exc, "Error uploading file to blob storage")

    @app.exception_handler(PublishError)
    async def handle_publish_error(request: Request, exc: PublishError):
        return _server_error(exc, "Error sending user data to Service Bus")

    @app.exception_handler(StorageQueryError)
    async def handle_storage_query_error(request: Request, exc: StorageQueryError):
        return _server_error(exc, "Error fetching users from database")

    @app.exception_handler(UserServiceError)
    async def handle_service_error(request: Request, exc: UserServiceError):
        return _server_error(exc, "Service error")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Last resort for errors raised outside RequestIDMiddleware, which
        already answers unexpected route errors itself. Stack trace is
        logged server-side only.
        """
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(status_code=500, content=internal_error_body(rid))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    store: Optional[UserStore] = None,
    uploader: Optional[BlobUploader] = None,
    publisher: Optional[QueuePublisher] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Any collaborator not passed in is built from `settings`; tests pass
    substitutes. With no arguments at all (uvicorn --factory) the settings
    are loaded from config.json.

    Raises:
        ConfigError: settings were not given and config.json is unusable
        StorageConnectError: the connection string cannot build an engine
    """
    if settings is None:
        settings = load_settings()

    if store is None:
        store = UserStore(
            settings.database.connection_string,
            echo=settings.server.log_level == "DEBUG",
        )
    if uploader is None:
        uploader = BlobUploader(settings.azure.blob_connection_string)
    if publisher is None:
        publisher = QueuePublisher(settings.azure.service_bus_connection_string)

    app = FastAPI(
        title="User Service API",
        description=(
            "Creates users (profile photo to blob storage, record to the user "
            "queue) and lists the users stored in the database."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.user_service = UserService(
        store=store,
        uploader=uploader,
        publisher=publisher,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → CORS → routes

    # Only the configured frontend origin gets CORS headers back
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["X-Request-ID"],
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router)

    return app


# ══════════════════════════════════════════════════════════════════════════
# Entry Point
# ══════════════════════════════════════════════════════════════════════════

def run() -> None:
    """
    Start the service.

    Exits with status 1 when config.json is missing or malformed or the
    store cannot be set up; uvicorn itself exits if the startup ping fails.
    """
    try:
        settings = load_settings()
    except UserServiceError as e:
        setup_logging()
        logger.critical("%s | Context: %s", e.message, e.context)
        sys.exit(1)

    setup_logging(settings.server.log_level)

    try:
        app = create_app(settings)
    except UserServiceError as e:
        logger.critical("%s | Context: %s", e.message, e.context)
        sys.exit(1)

    logger.info("Starting server on port %d...", settings.server.port)
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        lifespan="on",
        log_config=None,
    )

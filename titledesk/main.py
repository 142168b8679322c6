"""
TitleDesk Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers;
       uvicorn serves the module-level `app` (uvicorn titledesk.main:app).

Middleware (outermost first at request time):
    RateLimit → RequestID → Logging → GZip → CORS → routes

Error responses all share one body shape:
    {"error": "...", "message": "...", "details": {...}, "request_id": "..."}

Lifecycle:
    Startup:  logging, configuration check, storage directory, app
              settings cache
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from titledesk import __version__
from titledesk.config import settings
from titledesk.database import async_session_factory, dispose_engine
from titledesk.exceptions import (
    AuthenticationError,
    CloudStorageError,
    ConflictError,
    DatabaseError,
    FileStorageError,
    NotFoundError,
    PermissionDeniedError,
    TitleDeskError,
    ValidationError,
)
from titledesk.middleware.logging import RequestLoggingMiddleware
from titledesk.middleware.rate_limit import RateLimitMiddleware
from titledesk.middleware.request_id import RequestIDMiddleware, request_id_var
from titledesk.routes import (
    activity,
    applications,
    auth,
    branches,
    companies,
    document_types,
    health,
    onedrive,
    roles,
    users,
)
from titledesk.services.app_settings_service import app_settings_store

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure stdout logging once; noisy third-party loggers go to WARNING."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


async def load_app_settings() -> None:
    try:
        async with async_session_factory() as session:
            await app_settings_store.load(session)
    except Exception as e:
        logger.warning("App settings not loaded at startup, defaults in use until first read: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("TitleDesk Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", e)

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    await load_app_settings()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("TitleDesk Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy onto HTTP responses.

        ValidationError         → 400
        AuthenticationError     → 401
        PermissionDeniedError   → 403
        NotFoundError           → 404
        ConflictError           → 409
        CloudStorageError       → 502 (or the mapped Graph 401/404)
        FileStorageError        → 500
        DatabaseError           → 500, generic message
        TitleDeskError          → its status_code
        Exception               → 500, generic message, stack trace logged

    Internal details (paths, SQL, stack traces) are only ever logged.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, exc.error_code, exc.message, exc.context)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(401, exc.error_code, exc.message)

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.info("[%s] Forbidden %s %s: %s", request_id_var.get(""), request.method, request.url.path, exc.message)
        return _error_response(403, exc.error_code, exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, exc.error_code, exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error_response(409, exc.error_code, exc.message, exc.context)

    @app.exception_handler(CloudStorageError)
    async def handle_cloud_storage_error(request: Request, exc: CloudStorageError):
        logger.warning("[%s] OneDrive error (%d): %s", request_id_var.get(""), exc.status_code, exc.message)
        return _error_response(exc.status_code, exc.error_code, exc.message)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("[%s] File storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(TitleDeskError)
    async def handle_titledesk_error(request: Request, exc: TitleDeskError):
        logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return _error_response(exc.status_code, exc.error_code, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), exc, exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


def create_app() -> FastAPI:
    app = FastAPI(
        title="TitleDesk API",
        description=(
            "Back office for property title verification: applications and their "
            "queries, client companies and branches, document masters, users and "
            "roles, and OneDrive document handling."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Added innermost first; the last one added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(applications.router)
    app.include_router(companies.router)
    app.include_router(branches.router)
    app.include_router(document_types.application_documents_router)
    app.include_router(document_types.company_documents_router)
    app.include_router(users.router)
    app.include_router(roles.router)
    app.include_router(activity.router)
    app.include_router(onedrive.router)
    app.include_router(health.router)

    return app


app = create_app()

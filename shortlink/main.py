"""
FastAPI Application Entry Point

This module builds the FastAPI application and configures:
- API routes
- Middleware (logging, CORS)
- Exception handlers mapping ErrorKind to HTTP status codes
- Lifecycle of the owned resources (database handle, rate policy gate)

Design Decisions:
- create_app() wires every collaborator explicitly, so tests can pass their
  own settings, database or gate; the module-level `app` is what uvicorn runs
- The database handle is owned by the app and shut down with it
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shortlink.api import endpoints
from shortlink.core.error_classifier import classify, log_error, to_payload
from shortlink.core.exceptions import ShortenerError
from shortlink.core.rate_limit import RatePolicyGate
from shortlink.core.setting import Settings, get_settings
from shortlink.db.session import Database
from shortlink.db.sql_store import SQLRecordStore
from shortlink.middleware.logging import add_logging_middleware, configure_logging
from shortlink.services.code_generator import CodeGenerator
from shortlink.services.url_service import URLRecordService

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def build_url_service(settings: Settings, database: Database) -> URLRecordService:
    """Assemble store, generator and service from settings."""
    store = SQLRecordStore(database, operation_timeout=settings.STORE_OPERATION_TIMEOUT)
    generator = CodeGenerator(
        store,
        length=settings.SHORT_CODE_LENGTH,
        alphabet=settings.SHORT_CODE_ALPHABET,
        max_attempts=settings.SHORT_CODE_MAX_ATTEMPTS,
    )
    return URLRecordService(
        store,
        generator,
        allowed_schemes=settings.ALLOWED_URL_SCHEMES,
        max_url_length=settings.MAX_URL_LENGTH,
    )


def _error_response(request: Request, error: ShortenerError) -> JSONResponse:
    headers = dict(error.headers)
    if error.retry_after is not None:
        headers["Retry-After"] = str(error.retry_after)
    return JSONResponse(
        status_code=error.kind.status_code,
        content=to_payload(error, debug=request.app.state.settings.DEBUG),
        headers=headers,
    )


async def shortener_error_handler(request: Request, exc: ShortenerError) -> JSONResponse:
    log_error(exc, exc)
    return _error_response(request, exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ShortenerError.validation("Invalid request", detail=str(exc.errors()))
    log_error(error)
    return _error_response(request, error)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = classify(exc, f"{request.method} {request.url.path}")
    log_error(error, exc)
    return _error_response(request, error)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    rate_gate: Optional[RatePolicyGate] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration, process settings by default
        database: Record store handle, built from settings by default
        rate_gate: Rate policy gate, built from settings by default
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    database = database or Database.from_settings(settings)

    # Title and description are used in auto-generated API documentation
    app = FastAPI(
        title="Shortlink",
        description="Short code allocation and URL record service",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        debug=settings.DEBUG,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.rate_gate = rate_gate or RatePolicyGate.from_settings(settings)
    app.state.url_service = build_url_service(settings, database)

    app.add_exception_handler(ShortenerError, shortener_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    add_logging_middleware(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CLIENT_ORIGIN],
        allow_credentials=settings.CLIENT_ORIGIN != "*",
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health endpoints defined before router to match before the /{short_code} route
    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint for health checks."""
        return {
            "message": "Shortlink",
            "version": VERSION,
            "docs": "/docs"
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for monitoring."""
        return {"status": "healthy"}

    app.include_router(endpoints.router, tags=["URL Shortener"])

    @app.on_event("startup")
    async def startup_event():
        """Open the database and create missing tables."""
        database.initialize()
        if settings.AUTO_CREATE_SCHEMA:
            await database.create_schema()
        logger.info(f"Shortlink started ({settings.ENV_SETTING.value})")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Release database connections."""
        await database.shutdown()

    return app


app = create_app()

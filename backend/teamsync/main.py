"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from teamsync.api import router as api_router
from teamsync.config import Settings, get_settings
from teamsync.db.session import Database
from teamsync.exceptions import ConflictError, InternalError, TeamSyncError, ValidationError
from teamsync.logging_config import configure_logging
from teamsync.middleware.logging import LoggingMiddleware
from teamsync.middleware.request_id import RequestIDMiddleware

logger = structlog.get_logger()


def _error_response(error: TeamSyncError) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=error.status_code,
        content={"detail": error.message, "code": error.code},
    )


async def handle_domain_error(request: Request, exc: TeamSyncError) -> ORJSONResponse:
    if exc.status_code >= 500:
        logger.error("domain_error", code=exc.code, error=exc.message)
    return _error_response(exc)


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """Render pydantic request errors like service-side ValidationError."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [
        str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")
    ]
    field = ".".join(location) or None
    message = first.get("msg", "Invalid request")
    if field:
        message = f"{field}: {message}"
    return _error_response(ValidationError(message, field=field))


async def handle_integrity_error(request: Request, exc: IntegrityError) -> ORJSONResponse:
    # A uniqueness race lost to a concurrent request
    logger.info("integrity_conflict", error=str(exc.orig))
    return _error_response(ConflictError("Resource conflicts with an existing one"))


async def handle_database_error(request: Request, exc: SQLAlchemyError) -> ORJSONResponse:
    logger.error("database_error", error=str(exc), exc_info=exc)
    return _error_response(InternalError())


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain and store errors onto ``{"detail", "code"}`` responses."""
    app.add_exception_handler(TeamSyncError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    settings: Settings = app.state.settings
    database: Database = app.state.db

    logger.info("application_starting", version=settings.app_version)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    if database.engine.dialect.name == "sqlite":
        # Local SQLite databases are not managed by Alembic
        await database.create_all()
    await database.ping()
    logger.info("database_connected")

    yield

    logger.info("application_stopping")
    await database.dispose()
    logger.info("database_closed")


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``settings`` and ``database`` default to the environment configuration;
    tests pass their own to run against an in-memory store.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Team task and project management",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = database or Database.from_settings(settings)

    # Add middleware (order matters - last added is first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    # Trust proxy headers (X-Forwarded-Proto, X-Forwarded-For) from the reverse proxy
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    register_exception_handlers(app)

    app.include_router(api_router, prefix=settings.api_prefix)
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )

    return app


app = create_app()

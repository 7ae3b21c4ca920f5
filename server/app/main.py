"""Application factory for the tour catalog and admin back office."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.database import Database
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    request_validation_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    SERVICE_NAME,
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_metrics,
    setup_structured_logging,
    setup_tracing,
)
from .routers import admin, admin_tour, health, metrics, tour

setup_structured_logging()

# stdlib loggers used by routers and services
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Attach a database to the app for its lifetime.

    A database handed to ``create_app`` is used as is and left open on
    shutdown; otherwise one is built from settings and disposed afterwards.
    """
    logger.info(f"Starting {SERVICE_NAME} ({settings.environment})")

    database: Optional[Database] = getattr(app.state, "database", None)
    owns_database = database is None
    if owns_database:
        database = Database(settings.database_url, echo=settings.debug)
        app.state.database = database

    try:
        setup_tracing(SERVICE_NAME)
        setup_metrics(SERVICE_NAME)
        instrument_sqlalchemy(database.engine)
        await database.create_all()
    except Exception as e:
        logger.error(f"Failed to initialize application: {e}")
        raise

    logger.info("Startup complete")

    yield

    if owns_database:
        await database.dispose()
    logger.info("Shutdown complete")


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        database: Pre-built database access object; one is created from
            settings at startup when omitted

    Returns:
        FastAPI: Application with middleware, error handlers and routers
    """
    app = FastAPI(
        title="Tour Admin API",
        description="Public tour catalog and back office: CRUD, bulk actions, "
                    "spreadsheet import/export and image upload",
        version=health.API_VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    if database is not None:
        app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )
    setup_middleware(app, enable_logging=True)
    instrument_fastapi(app)

    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    for module in (health, tour, admin, admin_tour, metrics):
        app.include_router(module.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )

"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from darf_engine.api.routes import documents_router, health_router
from darf_engine.api.schemas import ErrorResponse
from darf_engine.config import get_settings
from darf_engine.database import dispose_db, init_db
from darf_engine.errors import (
    ConflictError,
    DarfEngineError,
    DomainLookupError,
    NotFoundError,
    ValidationError,
)
from darf_engine.logging_config import configure_logging

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (DomainLookupError, 422),
)


def status_for(exc: DarfEngineError) -> int:
    """HTTP status for an engine error category."""
    for error_class, status_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging(get_settings().log_level)
    init_db()
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="DARF Withholding Engine API",
        description="Federal tax withholding on payment documents",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(DarfEngineError)
    async def engine_exception_handler(
        request: Request, exc: DarfEngineError
    ) -> JSONResponse:
        """Render engine errors with their code and offending keys."""
        body = ErrorResponse(detail=str(exc), code=exc.code, context=exc.context())
        return JSONResponse(status_code=status_for(exc), content=body.model_dump())

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(documents_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()

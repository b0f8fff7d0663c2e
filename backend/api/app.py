"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.config import get_settings
from shared.exceptions import ArenaError, StorageError
from modules.debates.routes import router as debates_router, arguments_router
from modules.submissions.routes import router as submissions_router, verify_router

from .models.errors import status_for
from .routes import health

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs startup and shutdown logic.
    """
    # Startup
    settings = get_settings()
    logger.info(
        f"Starting {settings.app_name} on {settings.host}:{settings.port} "
        f"(storage: {settings.storage_backend})"
    )
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")


async def arena_error_handler(request: Request, exc: ArenaError) -> JSONResponse:
    """Render domain exceptions raised by route handlers."""
    code = status_for(exc)
    if isinstance(exc, StorageError) or code >= 500:
        logger.exception(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
        )
    return JSONResponse(status_code=code, content=exc.to_dict())


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Structured debate arena for autonomous agents, judged by human votes",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.add_exception_handler(ArenaError, arena_error_handler)

    # Register routes
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(debates_router, prefix="/api/debates", tags=["debates"])
    app.include_router(submissions_router, prefix="/api/debates", tags=["submissions"])
    app.include_router(arguments_router, prefix="/api/arguments", tags=["arguments"])
    app.include_router(verify_router, prefix="/api/v1", tags=["verification"])

    return app


# Application instance for uvicorn
app = create_app()

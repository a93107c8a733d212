from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

from .api.v1.router import api_router
from .config import Settings, get_settings
from .container import build_container
from .core.exceptions import DuplicateUrlError, NotFoundError, StorageError, ValidationFailure
from .utils.logging import get_logger, mask_secret, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from .container import AutomationContainer

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    container_factory: Callable[[Settings], AutomationContainer] | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    factory = container_factory or build_container

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        errors, warnings = settings.validate_runtime()
        for warning in warnings:
            logger.warning("Configuration: %s", warning)
        if errors:
            for error in errors:
                logger.error("Configuration: %s", error)
            raise RuntimeError("Invalid configuration: " + "; ".join(errors))

        logger.info(
            "Starting bookmark automation (storage=%s, ai_enabled=%s, ai_key=%s, workers=%d)",
            settings.storage_backend,
            settings.ai_enabled,
            mask_secret(settings.ai_api_key),
            settings.ai_worker_count,
        )
        container = factory(settings)
        app.state.container = container
        await container.start()
        try:
            yield
        finally:
            await container.aclose()
            app.state.container = None
            logger.info("Bookmark automation stopped")

    app = FastAPI(
        title="Bookmark Automation API",
        debug=settings.debug,
        version="0.1.0",
        root_path=settings.root_path or "",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=[
            "Accept",
            "Accept-Language",
            "Content-Language",
            "Content-Type",
            "X-Requested-With",
        ],
        max_age=600,  # Cache preflight requests for 10 minutes
    )

    # GZip compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(DuplicateUrlError)
    async def duplicate_url_handler(request: Request, exc: DuplicateUrlError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

    @app.exception_handler(ValidationFailure)
    async def validation_handler(request: Request, exc: ValidationFailure) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def storage_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Storage error"},
        )

    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()

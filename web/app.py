from __future__ import annotations

import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import PlainTextResponse

from blobkeep.errors import (
    AuthorizationError,
    ConfigurationError,
    ObjectNotFoundError,
    StorageError,
    StorageTimeoutError,
    ValidationError,
)
from blobkeep.logging import configure_logging
from blobkeep.settings import Settings
from blobkeep.storage.factory import get_storage
from blobkeep.storage.service import StorageService
from web.routes.transfer import router as transfer_router
from web.routes.transfer import status_router

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[StorageError], int]] = [
    (ValidationError, 400),
    (AuthorizationError, 403),
    (ObjectNotFoundError, 404),
    (StorageTimeoutError, 504),
]


def status_for(exc: StorageError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def create_app(settings: Settings | None = None, storage: StorageService | None = None) -> FastAPI:
    """Build the transfer app around one storage backend.

    Raises ConfigurationError before any route is served when the backend
    cannot be built (e.g. local backend without a signing secret).
    """
    if settings is None:
        settings = Settings()
        configure_logging(settings)
    if storage is None:
        storage = get_storage(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Application started — storage backend: %s", storage.backend_name)
        yield

    app = FastAPI(docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = storage

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(status_router)
    # Cloud backends issue provider URLs; only the local backend needs these routes.
    if storage.backend_name == "local":
        app.include_router(transfer_router)
    else:
        logger.info("Transfer routes disabled for storage backend %s", storage.backend_name)

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError):
        status_code = status_for(exc)
        if isinstance(exc, ConfigurationError) or status_code >= 500:
            logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
        else:
            logger.info("Storage error on %s %s: %s", request.method, request.url.path, exc)
        return PlainTextResponse(exc.message, status_code=status_code)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception on %s %s:\n%s",
            request.method,
            request.url.path,
            traceback.format_exc(),
        )
        return PlainTextResponse("Internal Server Error", status_code=500)

    return app

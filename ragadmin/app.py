"""Main application setup for the RAG admin service.

This module constructs the FastAPI application, configures logging and
CORS, maps service errors to HTTP responses, and mounts the routers:
login (``/auth``), the vector-store demo (``/demo``), the login-gated
admin API (``/admin``) and the message catalogues (``/i18n``).  All
stateful storage is reached through the getters in ``storage``.

Run with ``uvicorn ragadmin.app:app``.
"""

from __future__ import annotations

import logging
import sys
from typing import Dict, Type

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ragadmin import __version__
from ragadmin.admin import admin_router
from ragadmin.auth import auth_router
from ragadmin.config import settings
from ragadmin.errors import (
    AuthError,
    DimensionMismatchError,
    EmbeddingError,
    ExtractionError,
    IndexExistsError,
    IndexNotFoundError,
    InvalidIndexNameError,
    NotFoundError,
    RagAdminError,
    UnsupportedFileError,
    UnsupportedStoreError,
)
from ragadmin.i18n import LOCALES, get_messages
from ragadmin.indexes import index_router
from ragadmin.ingest import ingest_router
from ragadmin.query import query_router

# Configure logging according to settings
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    stream=sys.stdout,
)

log = logging.getLogger("api.app")

ERROR_STATUS: Dict[Type[RagAdminError], int] = {
    IndexNotFoundError: 404,
    NotFoundError: 404,
    IndexExistsError: 409,
    InvalidIndexNameError: 400,
    DimensionMismatchError: 400,
    UnsupportedFileError: 415,
    UnsupportedStoreError: 400,
    ExtractionError: 422,
    EmbeddingError: 502,
    AuthError: 401,
}


def status_for(exc: RagAdminError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 400


async def service_error_handler(request: Request, exc: RagAdminError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        log.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        log.info(f"{request.method} {request.url.path} -> {code}: {exc}")
    return JSONResponse(status_code=code, content={"detail": str(exc)})


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    log.info(f"{request.method} {request.url.path} -> 400: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app() -> FastAPI:
    app = FastAPI(title="RAG Admin", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RagAdminError, service_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)

    # Mount routers
    app.include_router(auth_router)
    app.include_router(ingest_router)
    app.include_router(index_router)
    app.include_router(query_router)
    app.include_router(admin_router)

    @app.get("/health")
    def health() -> dict:
        """Return a simple health status."""
        return {"status": "ok"}

    @app.get("/i18n/{locale}")
    def messages(locale: str) -> dict:
        """Return the message catalogue for ``locale``."""
        if locale not in LOCALES:
            raise HTTPException(404, f"Unknown locale '{locale}'")
        return get_messages(locale)

    return app


app = create_app()

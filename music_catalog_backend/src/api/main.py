"""
FastAPI application entrypoint for the Music Catalog backend.

REST API for artists, albums, songs and genres:
- /api/artist, /api/album, /api/song, /api/genre (CRUD, search, pagination)
- /api/song/upload and /api/upload/image (files are forwarded to upload providers)

CORS is enabled for local development (http://localhost:3000 and the Vite dev
server) and can be extended via environment variables.
"""

from __future__ import annotations

import logging
import os as _os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from src.api.db import Database
from src.api.errors import CatalogError
from src.api.routes_albums import router as albums_router
from src.api.routes_artists import router as artists_router
from src.api.routes_genres import router as genres_router
from src.api.routes_songs import router as songs_router
from src.api.routes_uploads import router as uploads_router
from src.api.schemas import ErrorResponse
from src.api.uploads import AudioUploader, CloudinaryImageUploader, FirebaseAudioUploader, ImageUploader

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Artists", "description": "Create, search and manage artists."},
    {"name": "Albums", "description": "Create, search and manage albums."},
    {"name": "Songs", "description": "Create (JSON or multipart upload), search and manage songs."},
    {"name": "Genres", "description": "Manage genres and tag songs with them."},
    {"name": "Uploads", "description": "Image uploads for covers and artist pictures."},
    {"name": "Health", "description": "Service health and basic runtime info."},
]

error_responses = {
    400: {"model": ErrorResponse, "description": "Invalid input."},
    404: {"model": ErrorResponse, "description": "Entity or referenced relation not found."},
    409: {"model": ErrorResponse, "description": "Uniqueness conflict."},
}


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _cors_origins() -> list[str]:
    # Credentials=true requires explicit origins (not '*') in browsers, so we include common local dev URLs.
    # Add additional origins via CORS_ALLOW_ORIGINS or ALLOWED_ORIGINS, as comma-separated values.
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    raw = _os.getenv("CORS_ALLOW_ORIGINS") or _os.getenv("ALLOWED_ORIGINS", "")
    origins.extend(o.strip() for o in raw.split(",") if o.strip())
    return origins


def _error_response(status_code: int, error: str, message: str, **extra: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message, **extra})


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("request_failed: %s %s error=%s message=%s", request.method, request.url.path, exc.error, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        message = "; ".join(f"{'.'.join(str(p) for p in d['loc'])}: {d['msg']}" for d in details)
        return _error_response(400, "validation_failed", message or "Invalid request.", details=details)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("database_error: %s %s", request.method, request.url.path)
        return _error_response(
            500,
            "internal_error",
            "Database connection/query failed.",
            exception=exc.__class__.__name__,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error: %s %s", request.method, request.url.path)
        return _error_response(500, "internal_error", "Internal server error.")


# PUBLIC_INTERFACE
def create_app(
    database: Optional[Database] = None,
    image_uploader: Optional[ImageUploader] = None,
    audio_uploader: Optional[AudioUploader] = None,
) -> FastAPI:
    """
    Build the application with its collaborators.

    Supplied uploaders are used as-is. Missing ones are built from environment
    configuration at startup, sharing one httpx client that is closed on
    shutdown. Nothing connects until the first request (or startup, when
    DB_CREATE_SCHEMA is set).
    """
    database = database or Database()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if _truthy(_os.getenv("DB_CREATE_SCHEMA")):
            logger.info("DB: creating schema on startup")
            database.create_schema()

        http_client: Optional[httpx.AsyncClient] = None
        if image_uploader is None or audio_uploader is None:
            http_client = httpx.AsyncClient(timeout=httpx.Timeout(60.0, connect=10.0))
            _app.state.image_uploader = image_uploader or CloudinaryImageUploader(http_client)
            _app.state.audio_uploader = audio_uploader or FirebaseAudioUploader(http_client)
        try:
            yield
        finally:
            if http_client is not None:
                await http_client.aclose()
            database.dispose()

    app = FastAPI(
        title="Music Catalog Backend API",
        description=(
            "Catalog of artists, albums, songs and genres.\n\n"
            "Authentication: none (public API)\n\n"
            "Lists return {data, pagination}; errors return {error, message}."
        ),
        version="1.0.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.database = database
    if image_uploader is not None:
        app.state.image_uploader = image_uploader
    if audio_uploader is not None:
        app.state.audio_uploader = audio_uploader

    cors_origins = _cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if cors_origins else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    for router in (artists_router, albums_router, songs_router, genres_router, uploads_router):
        app.include_router(router, responses=error_responses)

    @app.get(
        "/",
        summary="Health check",
        description="Simple health check endpoint.",
        tags=["Health"],
    )
    def health_check():
        """Return basic service health information."""
        return {"status": "ok"}

    return app


app = create_app()

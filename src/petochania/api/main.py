"""Petochania Backend: FastAPI Application.

This module is the single entry point for the web application.  It defines
the application factory, the module-level ``app`` instance served by
uvicorn, and the ``main()`` CLI function.

Architecture
------------
- **Configuration** comes from :mod:`petochania.core.config`
  (``PETOCHANIA_*`` environment variables and ``.env``).
- **Persistence** is a single JSON document owned by
  :class:`~petochania.core.store.SiteStore`, loaded in the lifespan hook.
  A corrupt document stops the server from starting unless
  ``recover_corrupt_store`` is enabled.
- **Authentication** is one admin account; mutating routes require a
  bearer token issued by ``POST /api/login``.
- **Uploaded images** are served by FastAPI's ``StaticFiles`` at
  ``/uploads/<category>/<file>``.
- **Errors** are returned as ``{"message": ...}`` JSON bodies.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/api/health``               Liveness and version
POST      ``/api/login``                Exchange credentials for a token
PUT       ``/api/user``                 Change admin username/password
GET/PUT   ``/api/settings``             Site settings
*         ``/api/cats[/{id}]``          Cats with multiple images
*         ``/api/gallery[/{id}]``       Gallery items with one image
*         ``/api/faq[/{id}]``           FAQ entries
*         ``/api/reviews[/{id}]``       Reviews with one image
GET       ``/uploads/...``              Uploaded images
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    petochania

Direct invocation::

    python -m petochania.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from petochania import __version__
from petochania.api import auth, settings
from petochania.api.resources import build_collection_routers
from petochania.api.uploads import UPLOADS_URL_PREFIX, UploadHandler
from petochania.core.config import PetochaniaConfig, config
from petochania.core.security import PasswordHasher, TokenService
from petochania.core.store import SiteStore, default_document

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application lifecycle: store loading.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load the site document before the first request is served.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.

    Raises:
        StoreCorruptedError: If the database file cannot be parsed and
            recovery is disabled.  The server does not start.
    """
    cfg: PetochaniaConfig = app.state.config
    if cfg.uses_default_secret:
        logger.warning("Using the built-in JWT secret; set JWT_SECRET in production")

    app.state.store.load()
    logger.info(f"API ready at {cfg.public_base_url}/api")

    yield


# ---------------------------------------------------------------------------
# Error envelope.
# ---------------------------------------------------------------------------


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"message": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error"},
    )


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(cfg: PetochaniaConfig | None = None) -> FastAPI:
    """Build a FastAPI application bound to *cfg*.

    Services are constructed here and stored on ``app.state``; the store is
    only read from disk when the lifespan starts.

    Args:
        cfg: Configuration to use.  Defaults to the global ``config``.

    Returns:
        The configured application.
    """
    cfg = cfg or config
    cfg.ensure_directories()

    app = FastAPI(
        title="Petochania API",
        description="Content backend for the Petochania cattery site.",
        version=__version__,
        lifespan=lifespan,
    )

    hasher = PasswordHasher(rounds=cfg.bcrypt_rounds)
    app.state.config = cfg
    app.state.hasher = hasher
    app.state.tokens = TokenService(
        cfg.jwt_secret,
        algorithm=cfg.jwt_algorithm,
        expire_hours=cfg.token_expire_hours,
    )
    app.state.uploads = UploadHandler(cfg.uploads_dir, cfg.max_upload_size_bytes)
    app.state.store = SiteStore(
        cfg.database_path,
        default_factory=lambda: default_document(
            cfg.admin_username, hasher.hash(cfg.admin_password)
        ),
        recover_corrupt=cfg.recover_corrupt_store,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials="*" not in cfg.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    api = APIRouter(prefix="/api")

    @api.get("/health", tags=["Health"])
    async def health() -> dict:
        return {"status": "ok", "version": __version__}

    api.include_router(auth.router)
    api.include_router(settings.router)
    for router in build_collection_routers():
        api.include_router(router)
    app.include_router(api)

    app.mount(UPLOADS_URL_PREFIX, StaticFiles(directory=str(cfg.uploads_dir)), name="uploads")

    # Mounted last so it never shadows /api or /uploads.
    if cfg.site_dir is not None:
        app.mount("/", StaticFiles(directory=str(cfg.site_dir), html=True), name="site")

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~petochania.core.config.config`.
    This function is registered as the ``petochania`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Starting server on port {config.server_port}")
    logger.info(f"Admin API: {config.public_base_url}/api")
    if config.site_dir is not None:
        logger.info(f"Main site: {config.public_base_url}/index.html")

    uvicorn.run(
        "petochania.api.main:app",
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()

"""
StoreHub Backend: FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers, routers and the
       objects routes depend on (repositories, upload steps, view
       collaborators) onto app.state. uvicorn serves `storehub.main:app`.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────┐ ┌──────┐ ┌──────┐         │
    │  │  Req ID  │→│ Logging │→│ GZip │→│ CORS │         │
    │  └──────────┘ └─────────┘ └──────┘ └──────┘         │
    │                                                     │
    │  app.state (built once):                            │
    │    store_repository, user_repository,               │
    │    upload_filter, image_resizer, renderer, flashes  │
    │                                                     │
    │  Routes: pages │ /api │ /uploads │ /health          │
    └─────────────────────────────────────────────────────┘

Error mapping:
    ValidationError     → 400 JSON │ page: error flash + redirect back
    AuthorizationError  → 403 JSON │ page: error flash + redirect back
    NotFoundError       → 404 JSON │ page: "notFound" view
    UpstreamError       → 500 JSON │ page: "error" view (details logged only)
    anything else       → 500, stack trace logged only
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional
from urllib.parse import urlsplit

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storehub import __version__
from storehub.config import settings
from storehub.database import async_session_factory, dispose_engine
from storehub.exceptions import (
    AuthorizationError,
    NotFoundError,
    StoreHubError,
    UpstreamError,
    ValidationError,
)
from storehub.middleware.logging import RequestLoggingMiddleware
from storehub.middleware.request_id import RequestIDMiddleware
from storehub.routes import api, health, stores, uploads
from storehub.services.store_repository import StoreRepository
from storehub.services.upload_service import ImageResizer, UploadFilter
from storehub.services.user_repository import UserRepository
from storehub.views import CookieFlashMessenger, JSONViewRenderer, redirect

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Configure the root logger once, before anything else logs."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request chatter from these duplicates our own access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("StoreHub Backend %s starting up...", __version__)

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Upload directory: %s", upload_dir.resolve())
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("StoreHub Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


def wants_json(request: Request) -> bool:
    """API routes always answer JSON; pages do unless the client asks for it."""
    if request.url.path.startswith("/api/"):
        return True
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/html" not in accept


def back_url(request: Request) -> str:
    """
    Same-site Referer path to send the user back to, or "/".

    Foreign referers are ignored, and so is a referer pointing at the
    failing GET page itself (redirecting there would loop).
    """
    referer = request.headers.get("referer")
    if not referer:
        return "/"
    parts = urlsplit(referer)
    if parts.netloc and parts.netloc != request.url.netloc:
        return "/"
    path = parts.path or "/"
    if request.method == "GET" and path == request.url.path:
        return "/"
    return f"{path}?{parts.query}" if parts.query else path


def _json_error(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": _request_id(request)}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _flash_back(request: Request, exc: StoreHubError) -> Response:
    flashes = request.app.state.flashes
    flashes.flash(request, "error", exc.message)
    return redirect(request, back_url(request), flashes)


def _error_page(request: Request, status_code: int, message: str) -> Response:
    template = "notFound" if status_code == 404 else "error"
    return request.app.state.renderer.render(
        request,
        template,
        {"title": "Error", "message": message, "request_id": _request_id(request)},
        status_code=status_code,
    )


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        """Client sent invalid input: say what is wrong."""
        logger.warning("[%s] Validation error: %s", _request_id(request), exc.message)
        if wants_json(request):
            return _json_error(request, 400, "validation_error", exc.message, exc.context)
        return _flash_back(request, exc)

    @app.exception_handler(AuthorizationError)
    async def handle_authorization_error(request: Request, exc: AuthorizationError):
        logger.warning("[%s] Authorization error: %s", _request_id(request), exc.message)
        if wants_json(request):
            return _json_error(request, 403, "authorization_error", exc.message)
        return _flash_back(request, exc)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        if wants_json(request):
            return _json_error(request, 404, "not_found", exc.message)
        return _error_page(request, 404, exc.message)

    @app.exception_handler(UpstreamError)
    async def handle_upstream_error(request: Request, exc: UpstreamError):
        """Database or file system failure: generic message, details logged."""
        logger.error(
            "[%s] Upstream error: %s | Context: %s",
            _request_id(request),
            exc.message,
            exc.context,
        )
        message = "An internal error occurred. Please try again later."
        if wants_json(request):
            return _json_error(request, 500, "server_error", message)
        return _error_page(request, 500, message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: the stack trace goes to the log, never to the client."""
        logger.error(
            "[%s] Unexpected error: %s",
            _request_id(request),
            str(exc),
            exc_info=True,
        )
        message = "An unexpected error occurred. Please try again or contact support."
        if wants_json(request):
            return _json_error(request, 500, "internal_server_error", message)
        return _error_page(request, 500, message)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    upload_dir: Optional[str] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        session_factory: Database sessions for the repositories (tests pass
                         one bound to a scratch database).
        upload_dir:      Where resized photos are written.
    """
    app = FastAPI(
        title="StoreHub API",
        description="Store directory: add, tag, search, map and heart stores.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Collaborators ─────────────────────────────────────────────────────
    sessions = session_factory or async_session_factory
    app.state.session_factory = sessions
    app.state.store_repository = StoreRepository(sessions)
    app.state.user_repository = UserRepository(sessions)
    app.state.upload_filter = UploadFilter()
    app.state.image_resizer = ImageResizer(upload_dir=upload_dir)
    app.state.flashes = CookieFlashMessenger()
    app.state.renderer = JSONViewRenderer(app.state.flashes)

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(stores.router)
    app.include_router(api.router)
    app.include_router(uploads.router)
    app.include_router(health.router)

    return app


app = create_app()

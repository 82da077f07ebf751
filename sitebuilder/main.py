"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import yaml
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from sitebuilder.api.content import router as content_router
from sitebuilder.api.health import router as health_router
from sitebuilder.api.preview import router as preview_router
from sitebuilder.api.sites import router as sites_router
from sitebuilder.api.structure import router as structure_router
from sitebuilder.config import Settings
from sitebuilder.exceptions import InternalServerError, RenderError, SiteNotFoundError
from sitebuilder.filesystem.assets import AssetStore
from sitebuilder.filesystem.site_store import SiteStore
from sitebuilder.rendering.render_service import Renderer

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from starlette.responses import Response

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("MARKDOWN").setLevel(logging.INFO if debug else logging.WARNING)


def ensure_sites_dir(settings: Settings) -> None:
    """Create the sites directory if it does not exist yet."""
    sites_dir = settings.sites_dir
    if sites_dir.exists() and not sites_dir.is_dir():
        msg = f"Sites path exists but is not a directory: {sites_dir}"
        raise NotADirectoryError(msg)
    if not sites_dir.exists():
        logger.info("Creating sites directory at %s", sites_dir)
        sites_dir.mkdir(parents=True)


def init_app_state(app: FastAPI, settings: Settings) -> None:
    """Attach the site store, asset store and renderer to the app."""
    asset_store = AssetStore()
    app.state.settings = settings
    app.state.asset_store = asset_store
    app.state.site_store = SiteStore(
        settings.sites_dir,
        max_depth=settings.max_tree_depth,
        indentation_width=settings.indentation_width,
    )
    app.state.renderer = Renderer(asset_store)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan: startup and shutdown."""
    settings: Settings = app.state.settings
    _configure_logging(settings.debug)
    logger.info("Starting site builder (debug=%s)", settings.debug)

    try:
        ensure_sites_dir(settings)
    except Exception as exc:
        logger.critical("Failed to initialize sites directory at %s: %s.", settings.sites_dir, exc)
        raise

    init_app_state(app, settings)
    site_ids = app.state.site_store.list_site_ids()
    logger.info("Found %d sites in %s", len(site_ids), settings.sites_dir)

    yield

    logger.info("Site builder stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    docs_enabled = settings.debug or settings.expose_docs

    app = FastAPI(
        title="Site Builder",
        description="Structure editing and page rendering for static sites",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = settings

    app.add_middleware(GZipMiddleware, minimum_size=500)

    @app.middleware("http")
    async def security_headers(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        return response

    app.include_router(health_router)
    app.include_router(sites_router)
    app.include_router(structure_router)
    app.include_router(content_router)
    app.include_router(preview_router, prefix=settings.preview_root)

    # Global exception handlers: safety net for unhandled exceptions

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = []
        for err in exc.errors():
            loc = err.get("loc", ())
            field = str(loc[-1]) if loc else "unknown"
            errors.append({"field": field, "message": err.get("msg", "Invalid value")})
        logger.warning(
            "RequestValidationError in %s %s: %s",
            request.method,
            request.url.path,
            errors,
        )
        return JSONResponse(status_code=422, content={"detail": errors})

    @app.exception_handler(SiteNotFoundError)
    async def site_not_found_handler(request: Request, exc: SiteNotFoundError) -> JSONResponse:
        logger.info("SiteNotFoundError in %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=404, content={"detail": "Site not found"})

    @app.exception_handler(RenderError)
    async def render_error_handler(request: Request, exc: RenderError) -> JSONResponse:
        logger.error(
            "RenderError (stage=%s) in %s %s: %s",
            exc.stage or "unknown",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"detail": "Page rendering failed"})

    @app.exception_handler(OSError)
    async def os_error_handler(request: Request, exc: OSError) -> JSONResponse:
        if isinstance(exc, (ConnectionError, TimeoutError)):
            raise exc
        logger.error("OSError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Storage operation failed"},
        )

    @app.exception_handler(yaml.YAMLError)
    async def yaml_error_handler(request: Request, exc: yaml.YAMLError) -> JSONResponse:
        logger.error("YAMLError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(
            status_code=422,
            content={"detail": "Invalid content format"},
        )

    @app.exception_handler(InternalServerError)
    async def internal_server_error_handler(
        request: Request, exc: InternalServerError
    ) -> JSONResponse:
        logger.error(
            "InternalServerError in %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.warning("ValueError in %s %s: %s", request.method, request.url.path, exc)
        message = str(exc) or "Invalid value"
        return JSONResponse(
            status_code=422,
            content={"detail": message},
        )

    @app.exception_handler(TypeError)
    async def type_error_handler(request: Request, exc: TypeError) -> JSONResponse:
        logger.error(
            "[BUG] TypeError in %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.exception_handler(UnicodeDecodeError)
    async def unicode_error_handler(request: Request, exc: UnicodeDecodeError) -> JSONResponse:
        logger.error(
            "UnicodeDecodeError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=422,
            content={"detail": "Invalid content encoding"},
        )

    return app


app = create_app()


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    settings: Settings = app.state.settings
    uvicorn.run(
        "sitebuilder.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

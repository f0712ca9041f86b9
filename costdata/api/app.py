"""
FastAPI Application Factory

The app owns its components (HTTP client, database) for its lifetime:
they are created on startup and closed on shutdown. Tests pass
pre-built components instead and manage them themselves.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from costdata import __version__
from costdata.api.routes import error_response, router
from costdata.audit import configure_logging
from costdata.config import Settings, get_settings
from costdata.resolver import AppComponents, create_app_components

logger = structlog.get_logger("costdata.app")


def create_app(
    components: Optional[AppComponents] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        components: Pre-built components. If None, they are created on
                    startup from settings and closed on shutdown.
        settings: Settings to use (defaults to get_settings())
    """
    settings = settings or get_settings()
    app_settings = settings.app

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(app_settings.log_level)
        owned = None
        if getattr(app.state, "components", None) is None:
            owned = create_app_components(settings)
            app.state.components = owned
        logger.info("startup", environment=app_settings.app_environment, version=__version__)
        try:
            yield
        finally:
            if owned is not None:
                await owned.aclose()
                app.state.components = None
            logger.info("shutdown")

    app = FastAPI(
        title="Cost Data API",
        version=__version__,
        debug=app_settings.debug_mode,
        lifespan=lifespan,
    )
    if components is not None:
        app.state.components = components

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        return error_response(400, "Invalid request parameters")

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        logger.error("unhandled_error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"success": False, "error": "Server error"})

    app.include_router(router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app

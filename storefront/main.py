"""Affiliate Storefront API.

Serves coupons, products, brand pages and the admin dashboard data,
aggregated from the Rakuten Advertising publisher API.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.routes import api_router
from storefront.schemas.common import ErrorResponse
from storefront.services.rakuten_client import close_rakuten_client
from storefront.settings import get_settings

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Warn about unset credentials on startup; release the upstream client on shutdown."""
    missing = get_settings().missing_rakuten_credentials()
    if missing:
        # The app still starts; every upstream operation reports the gap.
        logger.warning(f"Rakuten credentials not configured: {', '.join(missing)}")
    else:
        logger.info("Rakuten credentials configured")

    yield

    await close_rakuten_client()


def _register_error_handlers(app: FastAPI, *, debug: bool) -> None:
    @app.exception_handler(HTTPException)
    async def envelope_http_errors(request: Request, exc: HTTPException) -> JSONResponse:
        # Routes put a ready envelope in ``detail``; anything else gets wrapped.
        if isinstance(exc.detail, dict) and "error" in exc.detail:
            content = exc.detail
        else:
            content = ErrorResponse.body("HTTP_ERROR", str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(Exception)
    async def envelope_unhandled_errors(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = str(exc) if debug else "Internal server error"
        return JSONResponse(status_code=500, content=ErrorResponse.body("INTERNAL_ERROR", message))


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Coupons, products and brand pages from the Rakuten Advertising network",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    _register_error_handlers(app, debug=settings.debug)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, bool]:
        return {"ok": True}

    app.include_router(api_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("storefront.main:app", host=settings.host, port=settings.port, reload=settings.debug)

"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import cast

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.middleware.sessions import SessionMiddleware

from estate_listings.assets import AssetGateway, CloudinaryGateway
from estate_listings.config import Settings
from estate_listings.db import Database, UserRepository
from estate_listings.errors import (
    AuthorizationError,
    ListingsError,
    NotFoundError,
    ValidationError,
)
from estate_listings.logging import configure_logging, get_logger
from estate_listings.services import ListingService

logger = get_logger(__name__)

SESSION_COOKIE = "estate_session"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


async def _validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    issues = cast(ValidationError, exc).issues
    return JSONResponse(
        {
            "error": "Validation failed",
            "issues": [issue.to_dict() for issue in issues],
        },
        status_code=400,
    )


async def _not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"error": "Listing not found"}, status_code=404)


async def _authorization_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.info("request_unauthorized", path=request.url.path)
    return JSONResponse({"error": "Unauthorized"}, status_code=401)


async def _service_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_failed",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse({"error": "Internal Server Error"}, status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    """Map service-layer errors to HTTP responses."""
    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(NotFoundError, _not_found_handler)
    app.add_exception_handler(AuthorizationError, _authorization_handler)
    # Persistence and remote asset failures
    app.add_exception_handler(ListingsError, _service_error_handler)


def create_app(
    settings: Settings | None = None,
    *,
    db: Database | None = None,
    assets: AssetGateway | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Application settings. Loaded from env if not provided.
        db: Persistence gateway. Built from ``settings.database_path`` if not provided.
        assets: Image host client. Cloudinary from settings if not provided.
    """
    if settings is None:
        settings = Settings()

    configure_logging(json_output=False)

    database = db if db is not None else Database(settings.database_path)
    asset_gateway = assets if assets is not None else CloudinaryGateway.from_settings(settings)
    if assets is None and not settings.cloudinary_configured:
        logger.warning("cloudinary_not_configured")

    listings = ListingService(
        database, asset_gateway, slug_max_attempts=settings.slug_max_attempts
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await database.initialize()
        logger.info("web_server_started", db_path=settings.database_path)
        yield
        await database.close()
        logger.info("web_server_stopped")

    app = FastAPI(title="Estate Listings", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database
    app.state.listings = listings
    app.state.users = UserRepository(database)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret.get_secret_value(),
        session_cookie=SESSION_COOKIE,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=settings.session_https_only,
    )

    register_exception_handlers(app)

    from estate_listings.web.admin_routes import router as admin_router
    from estate_listings.web.routes import router

    app.include_router(router)
    app.include_router(admin_router)

    return app

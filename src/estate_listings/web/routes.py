"""Public listing routes and admin sign-in."""

import json
import math
from typing import Any
from xml.sax.saxutils import escape

import pydantic
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from estate_listings import auth
from estate_listings.config import Settings
from estate_listings.db import UserRepository
from estate_listings.errors import FieldIssue, ValidationError
from estate_listings.logging import get_logger
from estate_listings.models import LoginRequest
from estate_listings.services import ListingService
from estate_listings.services.listings import MAX_PER_PAGE
from estate_listings.web.filters import FilterDep

logger = get_logger(__name__)

router = APIRouter()

STATIC_PAGES = ("", "/about", "/contact", "/listings")


def _get_listings(request: Request) -> ListingService:
    return request.app.state.listings  # type: ignore[no-any-return]


def _get_users(request: Request) -> UserRepository:
    return request.app.state.users  # type: ignore[no-any-return]


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[no-any-return]


async def read_json_body(request: Request) -> Any:
    """Decode a JSON request body, reporting malformed JSON as a validation error."""
    try:
        return await request.json()
    except json.JSONDecodeError as e:
        raise ValidationError([FieldIssue(field="body", message=f"Invalid JSON: {e.msg}")]) from e


@router.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({"status": "ok"})


@router.get("/api/listings")
async def browse_listings(
    request: Request,
    filters: FilterDep,
    page: int = 1,
    per_page: int | None = None,
) -> JSONResponse:
    """Search listings, newest first."""
    if per_page is None:
        per_page = _get_settings(request).listings_per_page
    page = max(1, page)
    per_page = max(1, min(MAX_PER_PAGE, per_page))

    items, total = await _get_listings(request).browse(filters, page=page, per_page=per_page)

    total_pages = math.ceil(total / per_page) if total > 0 else 1
    return JSONResponse(
        {
            "items": items,
            "total": total,
            "page": page,
            "per_page": per_page,
            "total_pages": total_pages,
        }
    )


@router.get("/api/listings/featured")
async def featured_listings(request: Request) -> JSONResponse:
    """Featured listings for the home page."""
    limit = _get_settings(request).featured_limit
    items = await _get_listings(request).featured(limit)
    return JSONResponse(items)


@router.get("/api/listings/{slug}")
async def listing_detail(request: Request, slug: str) -> JSONResponse:
    """Public listing detail with images, or 404."""
    listing = await _get_listings(request).get_by_slug(slug)
    return JSONResponse(listing)


@router.get("/sitemap.xml")
async def sitemap(request: Request) -> Response:
    """Sitemap of the static pages and every listing page."""
    base_url = _get_settings(request).get_base_url()
    entries = await _get_listings(request).sitemap_entries()

    urls: list[str] = []
    for path in STATIC_PAGES:
        priority = "1.0" if path == "" else "0.8"
        urls.append(
            f"<url><loc>{escape(base_url + path)}</loc>"
            f"<changefreq>daily</changefreq><priority>{priority}</priority></url>"
        )
    for entry in entries:
        loc = escape(f"{base_url}/listings/{entry['slug']}")
        urls.append(
            f"<url><loc>{loc}</loc><lastmod>{escape(entry['updated_at'])}</lastmod>"
            "<changefreq>weekly</changefreq><priority>0.7</priority></url>"
        )

    body = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        + "".join(urls)
        + "</urlset>"
    )
    return Response(content=body, media_type="application/xml")


@router.post("/api/auth/login")
async def login(request: Request) -> JSONResponse:
    """Check credentials and start a session."""
    body = await read_json_body(request)
    try:
        credentials = LoginRequest.model_validate(body)
    except pydantic.ValidationError as e:
        raise ValidationError.from_pydantic(e) from e

    identity = await auth.authenticate(
        _get_users(request), credentials.email, credentials.password
    )
    if identity is None:
        return JSONResponse({"error": "Invalid email or password"}, status_code=401)

    auth.login(request.session, identity)
    logger.info("login_succeeded", user_id=identity.user_id, role=identity.role.value)
    return JSONResponse({"user": identity.model_dump(mode="json")})


@router.post("/api/auth/logout")
async def logout(request: Request) -> JSONResponse:
    auth.logout(request.session)
    return JSONResponse({"success": True})


@router.get("/api/auth/session")
async def current_session(request: Request) -> JSONResponse:
    """The signed-in user, or null."""
    identity = auth.identity_from_session(request.session)
    return JSONResponse({"user": identity.model_dump(mode="json") if identity else None})

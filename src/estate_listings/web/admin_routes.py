"""Admin listing management routes.

Every route resolves the caller's identity from the session and rejects
non-admins with 401 before touching the database.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from estate_listings.auth import identity_from_session, require_admin
from estate_listings.models import Identity
from estate_listings.services import ListingService
from estate_listings.web.routes import read_json_body

router = APIRouter()


def get_admin(request: Request) -> Identity:
    """FastAPI dependency: the signed-in admin, or AuthorizationError."""
    return require_admin(identity_from_session(request.session))


AdminDep = Annotated[Identity, Depends(get_admin)]


def _get_listings(request: Request) -> ListingService:
    return request.app.state.listings  # type: ignore[no-any-return]


@router.get("/api/cloudinary/sign")
async def sign_upload(request: Request, admin: AdminDep) -> JSONResponse:
    """Signed credentials for a direct browser upload to the image host."""
    credentials = _get_listings(request).request_upload_credentials(admin)
    return JSONResponse(credentials.to_wire())


@router.get("/api/admin/listings")
async def list_listings(request: Request, admin: AdminDep) -> JSONResponse:
    items = await _get_listings(request).list_all(admin)
    return JSONResponse(items)


@router.post("/api/admin/listings")
async def create_listing(request: Request, admin: AdminDep) -> JSONResponse:
    """Create a listing; responds 201 with its id and slug."""
    body = await read_json_body(request)
    created = await _get_listings(request).create(admin, body)
    return JSONResponse({"id": created.id, "slug": created.slug}, status_code=201)


@router.get("/api/admin/listings/{listing_id}")
async def get_listing(request: Request, listing_id: str, admin: AdminDep) -> JSONResponse:
    listing = await _get_listings(request).get_listing(admin, listing_id)
    return JSONResponse(listing)


@router.put("/api/admin/listings/{listing_id}")
async def update_listing(request: Request, listing_id: str, admin: AdminDep) -> JSONResponse:
    """Partially update a listing and reconcile its images."""
    body = await read_json_body(request)
    updated = await _get_listings(request).update(admin, listing_id, body)
    return JSONResponse({"success": True, "slug": updated.slug})


@router.delete("/api/admin/listings/{listing_id}")
async def delete_listing(request: Request, listing_id: str, admin: AdminDep) -> Response:
    await _get_listings(request).delete(admin, listing_id)
    return Response(status_code=204)


@router.patch("/api/admin/listings/{listing_id}/featured")
async def set_featured(request: Request, listing_id: str, admin: AdminDep) -> JSONResponse:
    """Toggle the featured flag."""
    body = await read_json_body(request)
    featured = await _get_listings(request).set_featured(admin, listing_id, body)
    return JSONResponse({"success": True, "featured": featured})

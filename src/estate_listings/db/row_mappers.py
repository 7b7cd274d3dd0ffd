"""Shared row-mapping utilities for database modules."""

from __future__ import annotations

from typing import Any, TypedDict

import aiosqlite


class ListingImageItem(TypedDict):
    """One image as returned to API callers."""

    public_id: str
    url: str
    created_at: str


class ListingCardItem(TypedDict, total=False):
    """Shape of dicts returned by browse and featured queries."""

    id: str
    title: str
    slug: str
    price: float
    location: str
    bedrooms: int
    bathrooms: float
    property_type: str
    status: str
    featured: bool
    created_at: str
    # First image by display order (subquery)
    image_url: str | None


class ListingDetailItem(ListingCardItem, total=False):
    """Full listing row plus its images."""

    description: str | None
    year_built: int | None
    lot_size: float | None
    square_feet: float | None
    updated_at: str
    images: list[ListingImageItem]


class SitemapEntry(TypedDict):
    slug: str
    updated_at: str


def row_to_listing(row: aiosqlite.Row) -> dict[str, Any]:
    """Convert a listings row to a plain dict with SQLite booleans restored."""
    listing = dict(row)
    if "featured" in listing:
        listing["featured"] = bool(listing["featured"])
    return listing


def row_to_image(row: aiosqlite.Row) -> ListingImageItem:
    return {
        "public_id": row["public_id"],
        "url": row["image_url"],
        "created_at": row["created_at"],
    }

"""Listing query service: read-only queries for public pages and the admin table."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, cast

from estate_listings.db.row_mappers import (
    ListingCardItem,
    ListingDetailItem,
    ListingImageItem,
    SitemapEntry,
    row_to_image,
    row_to_listing,
)
from estate_listings.logging import get_logger

if TYPE_CHECKING:
    from estate_listings.db.gateway import Database
    from estate_listings.web.filters import ListingFilter

logger = get_logger(__name__)

_CARD_COLUMNS = """
    l.id, l.title, l.slug, l.price, l.location, l.bedrooms, l.bathrooms,
    l.property_type, l.status, l.featured, l.created_at,
    (SELECT li.image_url FROM listing_images li
     WHERE li.listing_id = l.id
     ORDER BY li.created_at, li.id LIMIT 1) AS image_url
"""

_NEWEST_FIRST = "l.created_at DESC, l.rowid DESC"


def _like_pattern(text: str) -> str:
    """Case-folded substring pattern with LIKE wildcards escaped."""
    escaped = text.casefold().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass
class FilterClauses:
    """Ordered predicate fragments and the values bound to their placeholders."""

    clauses: list[str] = field(default_factory=list)
    params: list[Any] = field(default_factory=list)

    def add(self, clause: str, *values: Any) -> None:
        self.clauses.append(clause)
        self.params.extend(values)

    @property
    def where_sql(self) -> str:
        """``WHERE a AND b ...``, or an empty string when nothing is filtered."""
        if not self.clauses:
            return ""
        return "WHERE " + " AND ".join(self.clauses)


def build_filter_clauses(filters: ListingFilter) -> FilterClauses:
    """Build WHERE fragments and params for listing filtering.

    Values are always bound, never interpolated into the SQL text.

    Args:
        filters: Validated filter parameters.

    Returns:
        FilterClauses with one fragment per active filter.
    """
    result = FilterClauses()

    if filters.search:
        pattern = _like_pattern(filters.search)
        result.add(
            "(casefold(l.title) LIKE ? ESCAPE '\\'"
            " OR casefold(l.location) LIKE ? ESCAPE '\\'"
            " OR casefold(l.description) LIKE ? ESCAPE '\\')",
            pattern,
            pattern,
            pattern,
        )
    if filters.min_price is not None:
        result.add("l.price >= ?", filters.min_price)
    if filters.max_price is not None:
        result.add("l.price <= ?", filters.max_price)
    if filters.bedrooms is not None:
        result.add("l.bedrooms >= ?", filters.bedrooms)
    if filters.bathrooms is not None:
        result.add("l.bathrooms >= ?", filters.bathrooms)
    if filters.property_type:
        result.add("l.property_type = ?", filters.property_type)
    if filters.status:
        result.add("l.status = ?", filters.status)
    if filters.featured is not None:
        result.add("l.featured = ?", 1 if filters.featured else 0)

    return result


class ListingQueryService:
    """Read-only listing queries."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def count(self, filters: ListingFilter) -> int:
        """Count listings matching filters (no data fetch)."""
        where = build_filter_clauses(filters)
        result = await self._db.execute(
            f"SELECT COUNT(*) FROM listings l {where.where_sql}",
            where.params,
        )
        row = result.first()
        return row[0] if row else 0

    async def browse(
        self,
        filters: ListingFilter,
        *,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[ListingCardItem], int]:
        """Get a page of listings, newest first, with optional filters.

        Args:
            filters: Validated filter parameters.
            page: Page number (1-indexed).
            per_page: Items per page.

        Returns:
            Tuple of (listing dicts, total count).
        """
        where = build_filter_clauses(filters)
        total = await self.count(filters)

        offset = (page - 1) * per_page
        result = await self._db.execute(
            f"""
            SELECT {_CARD_COLUMNS}
            FROM listings l
            {where.where_sql}
            ORDER BY {_NEWEST_FIRST}
            LIMIT ? OFFSET ?
            """,
            [*where.params, per_page, offset],
        )
        items = [cast(ListingCardItem, row_to_listing(row)) for row in result.rows]
        logger.debug("listings_browsed", filters=where.params, total=total, page=page)
        return items, total

    async def featured(self, limit: int = 6) -> list[ListingCardItem]:
        """Newest featured listings for the home page."""
        result = await self._db.execute(
            f"""
            SELECT {_CARD_COLUMNS}
            FROM listings l
            WHERE l.featured = 1
            ORDER BY {_NEWEST_FIRST}
            LIMIT ?
            """,
            (limit,),
        )
        return [cast(ListingCardItem, row_to_listing(row)) for row in result.rows]

    async def list_all(self) -> list[ListingCardItem]:
        """Every listing, newest first, for the admin table."""
        result = await self._db.execute(
            f"SELECT {_CARD_COLUMNS} FROM listings l ORDER BY {_NEWEST_FIRST}"
        )
        return [cast(ListingCardItem, row_to_listing(row)) for row in result.rows]

    async def get_images(self, listing_id: str) -> list[ListingImageItem]:
        """Images of a listing in display order."""
        result = await self._db.execute(
            """
            SELECT public_id, image_url, created_at
            FROM listing_images
            WHERE listing_id = ?
            ORDER BY created_at, id
            """,
            (listing_id,),
        )
        return [row_to_image(row) for row in result.rows]

    async def get_image_public_ids(self, listing_id: str) -> list[str]:
        """Public ids of the images currently persisted for a listing."""
        result = await self._db.execute(
            "SELECT public_id FROM listing_images WHERE listing_id = ? ORDER BY created_at, id",
            (listing_id,),
        )
        return [row["public_id"] for row in result.rows]

    async def _get_detail(self, column: str, value: str) -> ListingDetailItem | None:
        result = await self._db.execute(
            f"SELECT * FROM listings WHERE {column} = ?",
            (value,),
        )
        row = result.first()
        if row is None:
            return None
        listing = cast(ListingDetailItem, row_to_listing(row))
        listing["images"] = await self.get_images(listing["id"])
        listing["image_url"] = listing["images"][0]["url"] if listing["images"] else None
        return listing

    async def get_by_id(self, listing_id: str) -> ListingDetailItem | None:
        """Full listing with images, looked up by id."""
        return await self._get_detail("id", listing_id)

    async def get_by_slug(self, slug: str) -> ListingDetailItem | None:
        """Full listing with images, looked up by slug."""
        return await self._get_detail("slug", slug)

    async def sitemap_entries(self) -> list[SitemapEntry]:
        """Slug and last-modified time of every listing."""
        result = await self._db.execute(
            "SELECT slug, updated_at FROM listings ORDER BY created_at DESC"
        )
        return [{"slug": row["slug"], "updated_at": row["updated_at"]} for row in result.rows]

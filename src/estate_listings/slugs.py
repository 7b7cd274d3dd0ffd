"""URL slug derivation and uniqueness probing for listings."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final

from estate_listings.errors import SlugAllocationError
from estate_listings.logging import get_logger

if TYPE_CHECKING:
    from estate_listings.db.gateway import Database

logger = get_logger(__name__)

_NON_ALNUM_RUN: Final = re.compile(r"[^a-z0-9]+")

FALLBACK_SLUG: Final = "listing"
DEFAULT_MAX_ATTEMPTS: Final = 1000


def slugify(text: str) -> str:
    """Derive a URL-safe slug from free text.

    Lower-cases, collapses each run of characters outside ``[a-z0-9]`` into a
    single hyphen and trims hyphens from both ends. Text with no usable
    characters yields ``"listing"``.

    >>> slugify("Ocean View Villa!!")
    'ocean-view-villa'
    """
    slug = _NON_ALNUM_RUN.sub("-", text.lower()).strip("-")
    return slug or FALLBACK_SLUG


async def _slug_taken(db: Database, slug: str, exclude_id: str | None) -> bool:
    if exclude_id is None:
        result = await db.execute("SELECT 1 FROM listings WHERE slug = ?", (slug,))
    else:
        result = await db.execute(
            "SELECT 1 FROM listings WHERE slug = ? AND id != ?",
            (slug, exclude_id),
        )
    return result.row_count > 0


async def allocate_unique_slug(
    db: Database,
    title: str,
    *,
    exclude_id: str | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> str:
    """Find a slug for ``title`` that no other listing uses.

    Tries the bare slug, then ``-1``, ``-2`` and so on.

    Args:
        db: Persistence gateway to probe.
        title: Listing title to derive the slug from.
        exclude_id: Listing whose own slug does not count as a collision.
        max_attempts: Probe limit, including the bare slug.

    Raises:
        SlugAllocationError: If every candidate within the limit is taken.
    """
    base = slugify(title)
    candidate = base
    for counter in range(1, max_attempts + 1):
        if not await _slug_taken(db, candidate, exclude_id):
            return candidate
        candidate = f"{base}-{counter}"

    logger.error("slug_allocation_exhausted", base=base, attempts=max_attempts)
    raise SlugAllocationError(f"No free slug for {base!r} after {max_attempts} attempts")

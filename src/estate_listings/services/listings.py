"""Listing mutation service: atomic create/update/delete with image reconciliation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar

import pydantic

from estate_listings.auth import require_admin
from estate_listings.db.listing_queries import ListingQueryService
from estate_listings.errors import NotFoundError, ValidationError
from estate_listings.logging import get_logger
from estate_listings.models import (
    FeaturedUpdate,
    Identity,
    ListingCreate,
    ListingImageInput,
    ListingUpdate,
    UploadCredentials,
)
from estate_listings.services.image_sync import plan_image_sync
from estate_listings.slugs import DEFAULT_MAX_ATTEMPTS, allocate_unique_slug

if TYPE_CHECKING:
    from estate_listings.assets import AssetGateway
    from estate_listings.db.gateway import Database
    from estate_listings.db.row_mappers import (
        ListingCardItem,
        ListingDetailItem,
        SitemapEntry,
    )
    from estate_listings.web.filters import ListingFilter

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)

MAX_PER_PAGE = 100


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _validate(model: type[ModelT], payload: Any) -> ModelT:
    """Validate a request body, reporting every failing field at once."""
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError.from_pydantic(e) from e


@dataclass(frozen=True)
class CreatedListing:
    id: str
    slug: str


@dataclass(frozen=True)
class UpdatedListing:
    slug: str
    images_added: list[str] = field(default_factory=list)
    images_removed: list[str] = field(default_factory=list)


class ListingService:
    """Admin mutations and public reads for listings.

    Every mutation runs in one transaction on the persistence gateway. Remote
    asset deletions happen inside that transaction, before the matching local
    delete, and are not undone if the transaction later rolls back.
    """

    def __init__(
        self,
        db: Database,
        assets: AssetGateway,
        *,
        slug_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._db = db
        self._assets = assets
        self._queries = ListingQueryService(db)
        self._slug_max_attempts = slug_max_attempts

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, identity: Identity | None, payload: Any) -> CreatedListing:
        """Create a listing and its image rows.

        Raises:
            AuthorizationError: Caller is not an admin.
            ValidationError: Payload fails validation.
            PersistenceError: The store rejected a statement.
        """
        require_admin(identity)
        data = _validate(ListingCreate, payload)

        listing_id = uuid.uuid4().hex
        now = _now()
        async with self._db.transaction() as tx:
            slug = await allocate_unique_slug(
                tx, data.title, max_attempts=self._slug_max_attempts
            )
            columns: dict[str, Any] = {
                "id": listing_id,
                "slug": slug,
                **data.column_values(),
                "created_at": now,
                "updated_at": now,
            }
            col_list = ", ".join(columns)
            placeholders = ", ".join("?" for _ in columns)
            await tx.execute(
                f"INSERT INTO listings ({col_list}) VALUES ({placeholders})",
                list(columns.values()),
            )
            await self._insert_images(tx, listing_id, data.images, now)

        logger.info(
            "listing_created",
            listing_id=listing_id,
            slug=slug,
            image_count=len(data.images),
        )
        return CreatedListing(id=listing_id, slug=slug)

    async def update(
        self, identity: Identity | None, listing_id: str, payload: Any
    ) -> UpdatedListing:
        """Apply a partial update and reconcile the image set if one is given.

        Raises:
            AuthorizationError: Caller is not an admin.
            ValidationError: A supplied field fails validation.
            NotFoundError: No listing has this id.
            RemoteAssetError: Deleting a removed image failed.
            PersistenceError: The store rejected a statement.
        """
        require_admin(identity)
        data = _validate(ListingUpdate, payload)
        changes = data.column_changes()
        deleted_remote: list[str] = []

        try:
            async with self._db.transaction() as tx:
                lookup = await tx.execute(
                    "SELECT title, slug FROM listings WHERE id = ?", (listing_id,)
                )
                current = lookup.first()
                if current is None:
                    raise NotFoundError(f"Listing {listing_id} not found")

                slug: str = current["slug"]
                if "title" in changes and changes["title"] != current["title"]:
                    slug = await allocate_unique_slug(
                        tx,
                        changes["title"],
                        exclude_id=listing_id,
                        max_attempts=self._slug_max_attempts,
                    )
                    changes["slug"] = slug

                changes["updated_at"] = _now()
                set_sql = ", ".join(f"{column} = ?" for column in changes)
                await tx.execute(
                    f"UPDATE listings SET {set_sql} WHERE id = ?",
                    [*changes.values(), listing_id],
                )

                added: list[str] = []
                if data.images_supplied:
                    persisted = await self._queries.get_image_public_ids(listing_id)
                    plan = plan_image_sync(persisted, data.images or [])
                    for public_id in plan.to_delete:
                        await self._assets.delete_asset(public_id)
                        deleted_remote.append(public_id)
                        await tx.execute(
                            "DELETE FROM listing_images WHERE listing_id = ? AND public_id = ?",
                            (listing_id, public_id),
                        )
                    await self._insert_images(tx, listing_id, plan.to_add, changes["updated_at"])
                    added = [img.public_id for img in plan.to_add]
        except Exception:
            self._log_orphaned_deletions(listing_id, deleted_remote)
            raise

        logger.info(
            "listing_updated",
            listing_id=listing_id,
            columns=sorted(changes),
            images_added=len(added),
            images_removed=len(deleted_remote),
        )
        return UpdatedListing(slug=slug, images_added=added, images_removed=deleted_remote)

    async def delete(self, identity: Identity | None, listing_id: str) -> None:
        """Delete a listing, its remote images, then its rows.

        No row is deleted unless every remote deletion succeeded.

        Raises:
            AuthorizationError: Caller is not an admin.
            NotFoundError: No listing has this id.
            RemoteAssetError: A remote deletion failed.
            PersistenceError: The store rejected a statement.
        """
        require_admin(identity)
        deleted_remote: list[str] = []

        try:
            async with self._db.transaction() as tx:
                exists = await tx.execute("SELECT 1 FROM listings WHERE id = ?", (listing_id,))
                if exists.row_count == 0:
                    raise NotFoundError(f"Listing {listing_id} not found")

                public_ids = await self._queries.get_image_public_ids(listing_id)
                for public_id in public_ids:
                    await self._assets.delete_asset(public_id)
                    deleted_remote.append(public_id)

                await tx.execute("DELETE FROM listing_images WHERE listing_id = ?", (listing_id,))
                await tx.execute("DELETE FROM listings WHERE id = ?", (listing_id,))
        except Exception:
            self._log_orphaned_deletions(listing_id, deleted_remote)
            raise

        logger.info("listing_deleted", listing_id=listing_id, images_removed=len(deleted_remote))

    async def set_featured(self, identity: Identity | None, listing_id: str, payload: Any) -> bool:
        """Set the featured flag. Returns the new value."""
        require_admin(identity)
        data = _validate(FeaturedUpdate, payload)

        async with self._db.transaction() as tx:
            result = await tx.execute(
                "UPDATE listings SET featured = ?, updated_at = ? WHERE id = ?",
                (1 if data.featured else 0, _now(), listing_id),
            )
            if result.row_count == 0:
                raise NotFoundError(f"Listing {listing_id} not found")

        logger.info("listing_featured_set", listing_id=listing_id, featured=data.featured)
        return data.featured

    def request_upload_credentials(self, identity: Identity | None) -> UploadCredentials:
        """Signed parameters for a direct browser upload."""
        require_admin(identity)
        return self._assets.request_upload_credentials()

    async def _insert_images(
        self,
        tx: Database,
        listing_id: str,
        images: list[ListingImageInput],
        created_at: str,
    ) -> None:
        for img in images:
            await tx.execute(
                """
                INSERT INTO listing_images (listing_id, public_id, image_url, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (listing_id, img.public_id, img.url, created_at),
            )

    @staticmethod
    def _log_orphaned_deletions(listing_id: str, public_ids: list[str]) -> None:
        if public_ids:
            logger.warning(
                "remote_assets_deleted_before_rollback",
                listing_id=listing_id,
                public_ids=public_ids,
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_all(self, identity: Identity | None) -> list[ListingCardItem]:
        """Admin table of every listing, newest first."""
        require_admin(identity)
        return await self._queries.list_all()

    async def get_listing(self, identity: Identity | None, listing_id: str) -> ListingDetailItem:
        """Admin view of one listing with its images."""
        require_admin(identity)
        listing = await self._queries.get_by_id(listing_id)
        if listing is None:
            raise NotFoundError(f"Listing {listing_id} not found")
        return listing

    async def get_by_slug(self, slug: str) -> ListingDetailItem:
        """Public detail page data."""
        listing = await self._queries.get_by_slug(slug)
        if listing is None:
            raise NotFoundError(f"Listing {slug} not found")
        return listing

    async def browse(
        self,
        filters: ListingFilter,
        *,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[ListingCardItem], int]:
        """Filtered, paginated public listing search."""
        page = max(1, page)
        per_page = max(1, min(MAX_PER_PAGE, per_page))
        return await self._queries.browse(filters, page=page, per_page=per_page)

    async def featured(self, limit: int = 6) -> list[ListingCardItem]:
        return await self._queries.featured(limit)

    async def sitemap_entries(self) -> list[SitemapEntry]:
        return await self._queries.sitemap_entries()

"""Listing mutation services."""

from estate_listings.services.image_sync import ImageSyncPlan, plan_image_sync
from estate_listings.services.listings import CreatedListing, ListingService, UpdatedListing

__all__ = ["CreatedListing", "ImageSyncPlan", "ListingService", "UpdatedListing", "plan_image_sync"]

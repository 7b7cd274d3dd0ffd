"""Database access for listings, images and users."""

from estate_listings.db.gateway import Database, QueryResult
from estate_listings.db.listing_queries import (
    FilterClauses,
    ListingQueryService,
    build_filter_clauses,
)
from estate_listings.db.users import UserRepository

__all__ = [
    "Database",
    "FilterClauses",
    "ListingQueryService",
    "QueryResult",
    "UserRepository",
    "build_filter_clauses",
]

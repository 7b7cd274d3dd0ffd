"""ListingFilter model and FastAPI dependency for listing search parsing."""

from __future__ import annotations

import math
from typing import Annotated, Final

from fastapi import Depends, Query
from pydantic import BaseModel, field_validator

from estate_listings.models import ListingStatus, PropertyType

VALID_PROPERTY_TYPES: Final = {t.value for t in PropertyType}
VALID_STATUSES: Final = {s.value for s in ListingStatus}

# Sentinel the search form sends for "any value"
ALL_OPTION: Final = "all"


def _clean(value: object) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def _parse_optional_float(value: object) -> float | None:
    """Parse to a finite float, returning None for empty or non-numeric values."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        parsed = float(value)
    else:
        text = _clean(value)
        if text is None:
            return None
        try:
            parsed = float(text)
        except ValueError:
            return None
    return parsed if math.isfinite(parsed) else None


def _parse_optional_int(value: object) -> int | None:
    """Parse to an int, returning None for empty or non-integer values."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = _clean(value)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _validate_enum_field(value: object, valid_set: set[str]) -> str | None:
    """Strip, lowercase, and validate against a set. "all" and invalid mean no filter."""
    text = _clean(value)
    if text is None:
        return None
    cleaned = text.lower()
    if cleaned == ALL_OPTION:
        return None
    return cleaned if cleaned in valid_set else None


class ListingFilter(BaseModel):
    """Validated listing search parameters.

    All fields default to None (no filter). Validators coerce strings
    to the correct type and silently discard invalid values.
    """

    search: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    bedrooms: int | None = None
    bathrooms: float | None = None
    property_type: str | None = None
    status: str | None = None
    featured: bool | None = None

    @field_validator("search", mode="before")
    @classmethod
    def clean_search(cls, v: object) -> str | None:
        return _clean(v)

    @field_validator("min_price", "max_price", "bathrooms", mode="before")
    @classmethod
    def coerce_float(cls, v: object) -> float | None:
        return _parse_optional_float(v)

    @field_validator("bedrooms", mode="before")
    @classmethod
    def coerce_bedrooms(cls, v: object) -> int | None:
        return _parse_optional_int(v)

    @field_validator("property_type", mode="before")
    @classmethod
    def validate_property_type(cls, v: object) -> str | None:
        return _validate_enum_field(v, VALID_PROPERTY_TYPES)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: object) -> str | None:
        return _validate_enum_field(v, VALID_STATUSES)

    @field_validator("featured", mode="before")
    @classmethod
    def validate_featured(cls, v: object) -> bool | None:
        if isinstance(v, bool):
            return v
        text = _clean(v)
        if text is None:
            return None
        return {"true": True, "false": False}.get(text.lower())

    @property
    def active_count(self) -> int:
        """Number of filters that will constrain the query."""
        return sum(1 for v in self.model_dump().values() if v is not None)


def parse_filters(
    search: str | None = None,
    q: str | None = None,
    min_price: Annotated[str | None, Query(alias="minPrice")] = None,
    max_price: Annotated[str | None, Query(alias="maxPrice")] = None,
    bedrooms: str | None = None,
    bathrooms: str | None = None,
    property_type: Annotated[str | None, Query(alias="propertyType")] = None,
    status: str | None = None,
    featured: str | None = None,
) -> ListingFilter:
    """FastAPI dependency that parses query params into a ListingFilter."""
    return ListingFilter.model_validate(
        {
            "search": search if _clean(search) else q,
            "min_price": min_price,
            "max_price": max_price,
            "bedrooms": bedrooms,
            "bathrooms": bathrooms,
            "property_type": property_type,
            "status": status,
            "featured": featured,
        }
    )


FilterDep = Annotated[ListingFilter, Depends(parse_filters)]

"""Pydantic models for listings, images and admin identities."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PropertyType(StrEnum):
    """Kinds of property a listing can describe."""

    HOUSE = "house"
    APARTMENT = "apartment"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    LAND = "land"
    COMMERCIAL = "commercial"


class ListingStatus(StrEnum):
    """Sale status of a listing."""

    FOR_SALE = "for_sale"
    SOLD = "sold"
    PENDING = "pending"


class Role(StrEnum):
    """Roles a signed-in user can hold."""

    ADMIN = "admin"
    VIEWER = "viewer"


MIN_YEAR_BUILT: Final = 1000

NonEmptyStr = Annotated[str, Field(min_length=1)]
NonNegativeFloat = Annotated[float, Field(ge=0, strict=True, allow_inf_nan=False)]
NonNegativeInt = Annotated[int, Field(ge=0, strict=True)]
YearBuilt = Annotated[int, Field(ge=MIN_YEAR_BUILT, strict=True)]


def _check_year_not_future(v: int | None) -> int | None:
    if v is None:
        return None
    current_year = datetime.now(UTC).year
    if v > current_year:
        raise ValueError(f"year_built cannot be later than {current_year}")
    return v


def _dedupe_images(images: list["ListingImageInput"]) -> list["ListingImageInput"]:
    """Collapse repeated public ids to their first occurrence, keeping order."""
    seen: set[str] = set()
    unique: list[ListingImageInput] = []
    for img in images:
        if img.public_id in seen:
            continue
        seen.add(img.public_id)
        unique.append(img)
    return unique


class ListingImageInput(BaseModel):
    """An image already uploaded to the remote asset store."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    public_id: NonEmptyStr
    url: NonEmptyStr


class ListingCreate(BaseModel):
    """Request body for creating a listing."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: NonEmptyStr
    description: str | None = None
    price: NonNegativeFloat
    location: NonEmptyStr
    bedrooms: NonNegativeInt
    bathrooms: NonNegativeFloat
    property_type: PropertyType
    status: ListingStatus = ListingStatus.FOR_SALE
    year_built: YearBuilt | None = None
    lot_size: NonNegativeFloat | None = None
    square_feet: NonNegativeFloat | None = None
    images: list[ListingImageInput] = Field(default_factory=list)

    @field_validator("year_built")
    @classmethod
    def year_not_in_future(cls, v: int | None) -> int | None:
        return _check_year_not_future(v)

    @field_validator("images")
    @classmethod
    def unique_images(cls, v: list[ListingImageInput]) -> list[ListingImageInput]:
        return _dedupe_images(v)

    def column_values(self) -> dict[str, Any]:
        """Listing column values (everything except images)."""
        return self.model_dump(mode="json", exclude={"images"})


class ListingUpdate(BaseModel):
    """Request body for a partial listing update.

    Only supplied fields are validated and written. Nullable columns can be
    cleared with an explicit null; required columns cannot.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    title: NonEmptyStr | None = None
    description: str | None = None
    price: NonNegativeFloat | None = None
    location: NonEmptyStr | None = None
    bedrooms: NonNegativeInt | None = None
    bathrooms: NonNegativeFloat | None = None
    property_type: PropertyType | None = None
    status: ListingStatus | None = None
    year_built: YearBuilt | None = None
    lot_size: NonNegativeFloat | None = None
    square_feet: NonNegativeFloat | None = None
    images: list[ListingImageInput] | None = None

    @field_validator(
        "title", "price", "location", "bedrooms", "bathrooms", "property_type", "status", "images"
    )
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field may not be null")
        return v

    @field_validator("year_built")
    @classmethod
    def year_not_in_future(cls, v: int | None) -> int | None:
        return _check_year_not_future(v)

    @field_validator("images")
    @classmethod
    def unique_images(cls, v: list[ListingImageInput]) -> list[ListingImageInput]:
        return _dedupe_images(v)

    def column_changes(self) -> dict[str, Any]:
        """Supplied listing columns and their new values, in declaration order."""
        supplied = self.model_fields_set - {"images"}
        dumped = self.model_dump(mode="json", include=supplied)
        return {name: dumped[name] for name in type(self).model_fields if name in dumped}

    @property
    def images_supplied(self) -> bool:
        return "images" in self.model_fields_set


class FeaturedUpdate(BaseModel):
    """Request body for toggling the featured flag."""

    featured: bool = Field(strict=True)


class LoginRequest(BaseModel):
    """Admin login credentials."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: NonEmptyStr
    password: NonEmptyStr


class Identity(BaseModel):
    """An authenticated caller, passed explicitly into service calls."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str
    name: str | None = None
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class UploadCredentials(BaseModel):
    """Signed parameters a browser needs to upload straight to the asset store."""

    model_config = ConfigDict(frozen=True)

    timestamp: int
    signature: str
    folder: str
    api_key: str
    cloud_name: str

    def to_wire(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "signature": self.signature,
            "folder": self.folder,
            "apiKey": self.api_key,
            "cloudName": self.cloud_name,
        }

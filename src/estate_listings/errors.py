"""Error types raised by the listings service layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import pydantic


class ListingsError(Exception):
    """Base exception for the listings service."""


@dataclass(frozen=True)
class FieldIssue:
    """One failing field in a validation error."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationError(ListingsError):
    """One or more request fields failed validation.

    Carries every failing field, never just the first.
    """

    def __init__(self, issues: list[FieldIssue]) -> None:
        self.issues = issues
        fields = ", ".join(issue.field for issue in issues)
        super().__init__(f"Validation failed: {fields}")

    @classmethod
    def from_pydantic(cls, exc: pydantic.ValidationError) -> ValidationError:
        """Flatten a pydantic error into field/message pairs."""
        issues = [
            FieldIssue(
                field=".".join(str(part) for part in error["loc"]),
                message=error["msg"],
            )
            for error in exc.errors()
        ]
        return cls(issues)


class NotFoundError(ListingsError):
    """The referenced listing does not exist."""


class AuthorizationError(ListingsError):
    """The caller lacks the privilege required for the operation."""


class PersistenceError(ListingsError):
    """A relational store call failed."""


class SlugAllocationError(PersistenceError):
    """No free slug was found within the probe limit."""


class RemoteAssetError(ListingsError):
    """The image-hosting service call failed."""

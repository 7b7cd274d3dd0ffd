"""Credential checks and session-backed identities for the admin panel."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, MutableMapping
from typing import TYPE_CHECKING, Any, Final

import bcrypt

from estate_listings.errors import AuthorizationError
from estate_listings.logging import get_logger
from estate_listings.models import Identity, Role

if TYPE_CHECKING:
    from estate_listings.db.users import UserRepository

logger = get_logger(__name__)

SESSION_KEY: Final = "identity"

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES: Final = 72


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    encoded = password.encode()
    if len(encoded) > _BCRYPT_MAX_BYTES:
        raise ValueError(f"Password longer than {_BCRYPT_MAX_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    encoded = password.encode()
    if len(encoded) > _BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode())
    except ValueError:
        logger.warning("malformed_password_hash")
        return False


async def authenticate(users: UserRepository, email: str, password: str) -> Identity | None:
    """Resolve credentials to an identity, or None if they do not match.

    Unknown emails and wrong passwords are indistinguishable to the caller.
    """
    row = await users.get_by_email(email)
    if row is None:
        logger.info("login_rejected", reason="unknown_email")
        return None

    valid = await asyncio.to_thread(verify_password, password, row["password_hash"])
    if not valid:
        logger.info("login_rejected", reason="bad_password", user_id=row["id"])
        return None

    try:
        role = Role(row["role"])
    except ValueError:
        logger.warning("login_rejected", reason="unknown_role", user_id=row["id"])
        return None

    return Identity(user_id=row["id"], email=row["email"], name=row["name"], role=role)


def login(session: MutableMapping[str, Any], identity: Identity) -> None:
    """Store an identity in the session."""
    session[SESSION_KEY] = identity.model_dump(mode="json")


def logout(session: MutableMapping[str, Any]) -> None:
    session.pop(SESSION_KEY, None)


def identity_from_session(session: Mapping[str, Any]) -> Identity | None:
    """Rebuild the identity stored by :func:`login`, ignoring tampered shapes."""
    data = session.get(SESSION_KEY)
    if not isinstance(data, dict):
        return None
    try:
        return Identity.model_validate(data)
    except ValueError:
        return None


def resolve_role(session: Mapping[str, Any]) -> Role | None:
    """Role carried by a session, or None when the caller is not signed in."""
    identity = identity_from_session(session)
    return identity.role if identity else None


def require_admin(identity: Identity | None) -> Identity:
    """Return the identity if it holds the admin role.

    Raises:
        AuthorizationError: If the caller is anonymous or not an admin.
    """
    if identity is None or not identity.is_admin:
        raise AuthorizationError("Admin privileges required")
    return identity

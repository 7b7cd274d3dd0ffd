"""User repository for admin credentials."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import aiosqlite

from estate_listings.logging import get_logger
from estate_listings.models import Role

if TYPE_CHECKING:
    from estate_listings.db.gateway import Database

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepository:
    """Reads and writes rows of the ``users`` table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def create_user(
        self,
        email: str,
        password_hash: str,
        *,
        name: str | None = None,
        role: Role = Role.ADMIN,
    ) -> str:
        """Insert a user and return its id.

        Args:
            email: Login email (stored lower-cased).
            password_hash: bcrypt hash of the password.
            name: Display name.
            role: Role granted to the user.
        """
        user_id = uuid.uuid4().hex
        async with self._db.transaction() as tx:
            await tx.execute(
                """
                INSERT INTO users (id, name, email, password_hash, role, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    name,
                    normalize_email(email),
                    password_hash,
                    role.value,
                    datetime.now(UTC).isoformat(),
                ),
            )
        logger.info("user_created", user_id=user_id, role=role.value)
        return user_id

    async def get_by_email(self, email: str) -> aiosqlite.Row | None:
        """Fetch a user row by email, or None."""
        result = await self._db.execute(
            "SELECT id, name, email, password_hash, role FROM users WHERE email = ?",
            (normalize_email(email),),
        )
        return result.first()

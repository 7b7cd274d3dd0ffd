"""SQLite persistence gateway: parameterized statements and explicit transactions."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiosqlite

from estate_listings.errors import PersistenceError
from estate_listings.logging import get_logger

logger = get_logger(__name__)


def _casefold(value: str | None) -> str | None:
    """SQL ``casefold(x)``: Unicode-aware case folding (SQLite's LOWER is ASCII-only)."""
    return value.casefold() if isinstance(value, str) else value


@dataclass(frozen=True)
class QueryResult:
    """Rows returned by a statement plus the number of rows it touched."""

    rows: list[aiosqlite.Row]
    row_count: int

    def first(self) -> aiosqlite.Row | None:
        return self.rows[0] if self.rows else None


class Database:
    """Async SQLite gateway shared by the query and mutation layers.

    The connection runs in autocommit mode, so ``BEGIN``/``COMMIT``/``ROLLBACK``
    issued through :meth:`execute` are the only transaction boundaries.
    """

    def __init__(self, db_path: str) -> None:
        """Initialize the gateway with a database path.

        Args:
            db_path: Path to SQLite database file, or ":memory:" for in-memory.
        """
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None
        self._tx_lock = asyncio.Lock()
        self._tx_owner: asyncio.Task[Any] | None = None
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        """Ensure the directory for the database exists."""
        if self.db_path != ":memory:":
            path = Path(self.db_path)
            path.parent.mkdir(parents=True, exist_ok=True)

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self._conn = await aiosqlite.connect(self.db_path, isolation_level=None)
            self._conn.row_factory = aiosqlite.Row
            if self.db_path != ":memory:":
                await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute("PRAGMA busy_timeout=5000")
            await self._conn.execute("PRAGMA foreign_keys=ON")
            await self._conn.create_function("casefold", 1, _casefold, deterministic=True)
        return self._conn

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        """Run one parameterized statement.

        Statements from outside an open transaction wait until it commits or
        rolls back, so they never observe its uncommitted writes.

        Args:
            sql: Statement text using ``?`` placeholders.
            params: Values bound to the placeholders, in order.

        Returns:
            The fetched rows and the affected row count (row count of the
            result set for queries).

        Raises:
            PersistenceError: If SQLite rejects the statement.
        """
        if self._tx_owner is not None and self._tx_owner is asyncio.current_task():
            return await self._run(sql, params)
        async with self._tx_lock:
            return await self._run(sql, params)

    async def _run(self, sql: str, params: Sequence[Any]) -> QueryResult:
        conn = await self._get_connection()
        try:
            cursor = await conn.execute(sql, list(params))
            rows = list(await cursor.fetchall())
            row_count = cursor.rowcount if cursor.rowcount >= 0 else len(rows)
            await cursor.close()
        except aiosqlite.Error as e:
            logger.warning("statement_failed", error=str(e), sql=sql.split(None, 1)[0])
            raise PersistenceError(str(e)) from e
        return QueryResult(rows=rows, row_count=row_count)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Database]:
        """Run a unit of work inside ``BEGIN``/``COMMIT``.

        Any exception raised by the body rolls the transaction back and
        propagates. The task that opened the transaction owns the connection
        until it ends; every other statement waits.
        """
        async with self._tx_lock:
            self._tx_owner = asyncio.current_task()
            try:
                await self.execute("BEGIN")
                try:
                    yield self
                except BaseException:
                    await self._rollback()
                    raise
                try:
                    await self.execute("COMMIT")
                except PersistenceError:
                    await self._rollback()
                    raise
            finally:
                self._tx_owner = None

    async def _rollback(self) -> None:
        try:
            await self.execute("ROLLBACK")
        except PersistenceError:
            # No transaction left to roll back (SQLite may have aborted it already)
            logger.warning("rollback_failed", exc_info=True)
        else:
            logger.info("transaction_rolled_back")

    async def initialize(self) -> None:
        """Create tables and indexes if they do not exist."""
        await self.execute("""
            CREATE TABLE IF NOT EXISTS listings (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                slug TEXT NOT NULL UNIQUE,
                description TEXT,
                price REAL NOT NULL CHECK (price >= 0),
                location TEXT NOT NULL,
                bedrooms INTEGER NOT NULL CHECK (bedrooms >= 0),
                bathrooms REAL NOT NULL CHECK (bathrooms >= 0),
                property_type TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'for_sale',
                year_built INTEGER,
                lot_size REAL,
                square_feet REAL,
                featured BOOLEAN NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        await self.execute("""
            CREATE INDEX IF NOT EXISTS idx_listings_created_at
            ON listings(created_at)
        """)
        await self.execute("""
            CREATE INDEX IF NOT EXISTS idx_listings_featured
            ON listings(featured)
        """)

        await self.execute("""
            CREATE TABLE IF NOT EXISTS listing_images (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                listing_id TEXT NOT NULL,
                public_id TEXT NOT NULL,
                image_url TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (listing_id) REFERENCES listings(id) ON DELETE CASCADE,
                UNIQUE(listing_id, public_id)
            )
        """)
        await self.execute("""
            CREATE INDEX IF NOT EXISTS idx_listing_images_listing
            ON listing_images(listing_id)
        """)

        await self.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                name TEXT,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                role TEXT NOT NULL DEFAULT 'viewer',
                created_at TEXT NOT NULL
            )
        """)

        logger.info("database_initialized", db_path=self.db_path)

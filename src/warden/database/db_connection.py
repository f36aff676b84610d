"""
Database connection management for the automod store.

SQLite is used through one long-lived aiosqlite connection per process:

  - pragmas are applied once and the page cache stays warm
  - WAL mode allows one writer and concurrent readers

Writes are serialised at the application layer by a write semaphore so
concurrent event tasks queue up instead of fighting SQLite's busy timeout.
Reads need no semaphore in WAL mode.

Usage
-----
    await db_connection.open(path)

    async with db_connection.read() as conn:
        cursor = await conn.execute("SELECT ...")

    async with db_connection.transaction() as conn:
        await conn.execute("INSERT ...")
        # commits on clean exit, rolls back on exception

    await db_connection.close()
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from warden.util.logger import get_logger

logger = get_logger("database_connection")

_PRAGMAS = [
    "PRAGMA journal_mode = WAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA cache_size = -65536",     # 64 MB page cache
    "PRAGMA temp_store = MEMORY",
    "PRAGMA busy_timeout = 5000",
]


class ConnectionManager:
    """
    Owner of the single aiosqlite connection.

    Repositories receive a ConnectionManager instead of opening their own
    connections. Tests create their own instance against a temporary file;
    the bot uses the module-level ``db_connection``.
    """

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._write_sem = asyncio.Semaphore(1)
        self._path: Path | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self, path: Path) -> None:
        """
        Open the database and apply pragmas.

        Args:
            path: Path to the SQLite database file. Parent directories are
                created as needed.
        """
        if self._conn is not None:
            logger.warning("[DB CONNECTION] open() called but connection already exists, ignoring")
            return

        self._path = path
        path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(path)
        self._conn.row_factory = aiosqlite.Row

        for pragma in _PRAGMAS:
            await self._conn.execute(pragma)
        await self._conn.commit()

        logger.info("[DB CONNECTION] Opened connection to %s", path)

    async def close(self) -> None:
        """Checkpoint the WAL and close the connection."""
        if self._conn is None:
            return

        try:
            await self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            await self._conn.commit()
        except Exception:
            logger.exception("[DB CONNECTION] WAL checkpoint failed during close")
        finally:
            await self._conn.close()
            self._conn = None
            logger.info("[DB CONNECTION] Connection closed")

    @property
    def connection(self) -> aiosqlite.Connection:
        """
        The raw connection for reads.

        Raises:
            RuntimeError: If the connection has not been opened yet.
        """
        if self._conn is None:
            raise RuntimeError(
                "ConnectionManager: connection is not open. "
                "Call await db_connection.open(path) at startup."
            )
        return self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Serialised write transaction. Commits on clean exit and rolls back
        if the body raises.

        Raises:
            RuntimeError: If the connection is not open.
        """
        conn = self.connection

        async with self._write_sem:
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        """Read context, symmetrical with ``transaction()``. Takes no lock."""
        yield self.connection


db_connection = ConnectionManager()

"""
Database lifecycle coordinator.

Opens the shared connection, creates the schema and closes everything on
shutdown. Repositories are handed the same ``ConnectionManager``.

Lifecycle:
    1. ``await database.initialize()`` at startup
    2. Build repositories with ``database.connection``
    3. ``await database.shutdown()`` at exit
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from warden.configuration.app_configuration import app_config
from warden.database.db_connection import ConnectionManager, db_connection
from warden.database.db_schema import SchemaManager
from warden.util.logger import get_logger

logger = get_logger("database")


class Database:
    """Owns the connection manager for one database file."""

    def __init__(self, db_path: Optional[Path] = None, connection: Optional[ConnectionManager] = None) -> None:
        self.db_path = db_path if db_path is not None else app_config.database_path
        self.connection = connection if connection is not None else db_connection
        self._initialized = False

    async def initialize(self) -> bool:
        """
        Open the connection and create the schema.

        Returns:
            True if initialization succeeded, False otherwise
        """
        if self._initialized:
            logger.debug("[DATABASE] Already initialized, skipping")
            return True

        try:
            await self.connection.open(self.db_path)
            await SchemaManager.initialize_schema(self.connection.connection)
        except Exception as exc:
            logger.error("[DATABASE] Database initialization failed: %s", exc)
            await self.connection.close()
            return False

        self._initialized = True
        logger.info("[DATABASE] Database initialized at %s", self.db_path)
        return True

    async def shutdown(self) -> None:
        if not self._initialized:
            return
        await self.connection.close()
        self._initialized = False
        logger.info("[DATABASE] Database shutdown complete")

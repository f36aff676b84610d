"""
Database schema initialization.

Creates the automod tables and indexes and records the schema version.
Snowflakes are stored as TEXT so 64-bit ids survive any client that reads
the file; timestamps are INTEGER unix milliseconds (UTC).
"""

import aiosqlite

from warden.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the tables and indexes used by the repositories."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all tables and indexes if they do not exist yet.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS moderation_config (
                guild_id TEXT PRIMARY KEY,
                automod_enabled INTEGER NOT NULL DEFAULT 0,
                immune_roles TEXT NOT NULL DEFAULT '[]',
                escalation_tiers TEXT NOT NULL DEFAULT '[]',
                dm_on_infraction INTEGER NOT NULL DEFAULT 1,
                default_dm_template TEXT,
                point_decay_enabled INTEGER NOT NULL DEFAULT 0,
                point_decay_days INTEGER NOT NULL DEFAULT 30,
                log_channel_id TEXT,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS automod_rules (
                id TEXT PRIMARY KEY,
                guild_id TEXT NOT NULL,
                name TEXT NOT NULL,
                patterns TEXT NOT NULL,
                match_mode TEXT NOT NULL DEFAULT 'any',
                targets TEXT NOT NULL,
                actions TEXT NOT NULL,
                warn_points INTEGER NOT NULL DEFAULT 0,
                priority INTEGER NOT NULL DEFAULT 0,
                enabled INTEGER NOT NULL DEFAULT 1,
                channel_include TEXT NOT NULL DEFAULT '[]',
                channel_exclude TEXT NOT NULL DEFAULT '[]',
                role_include TEXT NOT NULL DEFAULT '[]',
                role_exclude TEXT NOT NULL DEFAULT '[]',
                timeout_duration_ms INTEGER,
                dm_template TEXT,
                created_at INTEGER NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS infractions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                source TEXT NOT NULL,
                type TEXT NOT NULL,
                reason TEXT NOT NULL,
                rule_id TEXT,
                rule_name TEXT,
                matched_content TEXT,
                matched_pattern TEXT,
                points_assigned INTEGER NOT NULL DEFAULT 0,
                total_points_after INTEGER,
                escalation_tier TEXT,
                channel_id TEXT,
                message_id TEXT,
                timestamp INTEGER NOT NULL,
                expires_at INTEGER,
                active INTEGER NOT NULL DEFAULT 1
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute("CREATE INDEX IF NOT EXISTS idx_automod_rules_guild ON automod_rules(guild_id, enabled)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_infractions_user ON infractions(guild_id, user_id, active)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_infractions_timestamp ON infractions(guild_id, timestamp DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_infractions_type ON infractions(type, guild_id)")

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))

"""
Repository for the moderation_config table, plus a TTL-cached wrapper.
"""

from __future__ import annotations

import json
from typing import List, Optional

from warden.configuration.app_configuration import app_config
from warden.database.db_cache import DatabaseQueryCache
from warden.database.db_connection import ConnectionManager
from warden.datatypes.automod_datatypes import AutomodAction
from warden.datatypes.discord_datatypes import ChannelID, GuildID, RoleID
from warden.datatypes.guild_settings import EscalationTier, GuildModerationConfig
from warden.repositories.row_codec import dump_ids, load_ids, optional_id, optional_str
from warden.util.logger import get_logger

logger = get_logger("config_repo")

_COLUMNS = (
    "guild_id, automod_enabled, immune_roles, escalation_tiers, dm_on_infraction, "
    "default_dm_template, point_decay_enabled, point_decay_days, log_channel_id"
)


def _dump_tiers(tiers) -> str:
    return json.dumps([
        {
            "threshold": tier.threshold,
            "actions": sorted(action.value for action in tier.actions),
            "name": tier.name,
            "duration_ms": tier.duration_ms,
        }
        for tier in tiers
    ])


def _load_tiers(raw: Optional[str]) -> tuple:
    tiers: List[EscalationTier] = []
    for item in json.loads(raw or "[]"):
        tiers.append(EscalationTier(
            threshold=int(item["threshold"]),
            actions=frozenset(AutomodAction(value) for value in item.get("actions", [])),
            name=item.get("name") or "",
            duration_ms=item.get("duration_ms"),
        ))
    return tuple(sorted(tiers, key=lambda tier: tier.threshold))


class SqliteConfigStore:
    """Reads and writes per-guild moderation config rows."""

    def __init__(self, db: ConnectionManager) -> None:
        self._db = db

    async def get_config(self, guild_id: GuildID) -> Optional[GuildModerationConfig]:
        """Return the guild's config, or None if the guild never configured automod."""
        async with self._db.read() as conn:
            async with conn.execute(
                f"SELECT {_COLUMNS} FROM moderation_config WHERE guild_id = ?",
                (str(guild_id),),
            ) as cursor:
                row = await cursor.fetchone()

        if row is None:
            return None

        return GuildModerationConfig(
            guild_id=GuildID(row["guild_id"]),
            automod_enabled=bool(row["automod_enabled"]),
            immune_roles=load_ids(row["immune_roles"], RoleID),
            escalation_tiers=_load_tiers(row["escalation_tiers"]),
            dm_on_infraction=bool(row["dm_on_infraction"]),
            default_dm_template=row["default_dm_template"],
            point_decay_enabled=bool(row["point_decay_enabled"]),
            point_decay_days=int(row["point_decay_days"]),
            log_channel_id=optional_id(row["log_channel_id"], ChannelID),
        )

    async def save_config(self, config: GuildModerationConfig) -> None:
        """Insert or replace the guild's config row."""
        async with self._db.transaction() as conn:
            await conn.execute(
                f"""
                INSERT INTO moderation_config ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(guild_id) DO UPDATE SET
                    automod_enabled     = excluded.automod_enabled,
                    immune_roles        = excluded.immune_roles,
                    escalation_tiers    = excluded.escalation_tiers,
                    dm_on_infraction    = excluded.dm_on_infraction,
                    default_dm_template = excluded.default_dm_template,
                    point_decay_enabled = excluded.point_decay_enabled,
                    point_decay_days    = excluded.point_decay_days,
                    log_channel_id      = excluded.log_channel_id,
                    updated_at          = CURRENT_TIMESTAMP
                """,
                (
                    str(config.guild_id),
                    int(config.automod_enabled),
                    dump_ids(config.immune_roles),
                    _dump_tiers(config.escalation_tiers),
                    int(config.dm_on_infraction),
                    config.default_dm_template,
                    int(config.point_decay_enabled),
                    config.point_decay_days,
                    optional_str(config.log_channel_id),
                ),
            )
        logger.debug("[CONFIG REPO] Saved moderation config for guild %s", config.guild_id)


class CachedConfigStore:
    """SqliteConfigStore with a short TTL cache in front of reads."""

    def __init__(self, store: SqliteConfigStore, cache: Optional[DatabaseQueryCache] = None) -> None:
        self._store = store
        self._cache = cache or DatabaseQueryCache(ttl_seconds=app_config.config_cache_ttl_seconds)

    async def get_config(self, guild_id: GuildID) -> Optional[GuildModerationConfig]:
        key = f"config:{guild_id}"
        if self._cache.contains(key):
            return self._cache.get(key)
        config = await self._store.get_config(guild_id)
        self._cache.set(key, config)
        return config

    async def save_config(self, config: GuildModerationConfig) -> None:
        await self._store.save_config(config)
        self._cache.invalidate(f"config:{config.guild_id}")

"""
Repository for the automod_rules table, plus a TTL-cached wrapper.

Rules are validated with ``rule_validation.validate_rule`` before they are
written, so everything the enforcement path reads back satisfies the
authoring limits.
"""

from __future__ import annotations

import json
from typing import List, Optional

import aiosqlite

from warden.automod.rule_validation import validate_rule
from warden.configuration.app_configuration import app_config
from warden.database.db_cache import DatabaseQueryCache
from warden.database.db_connection import ConnectionManager
from warden.datatypes.automod_datatypes import (
    AutomodAction,
    AutomodTarget,
    MatchMode,
    Pattern,
    Rule,
)
from warden.datatypes.discord_datatypes import ChannelID, GuildID, RoleID
from warden.repositories.row_codec import dump_ids, from_ms, load_ids, to_ms
from warden.util.logger import get_logger

logger = get_logger("rule_repo")

_COLUMNS = (
    "id, guild_id, name, patterns, match_mode, targets, actions, warn_points, priority, enabled, "
    "channel_include, channel_exclude, role_include, role_exclude, timeout_duration_ms, dm_template, created_at"
)


def _row_to_rule(row: aiosqlite.Row) -> Rule:
    return Rule(
        id=row["id"],
        guild_id=GuildID(row["guild_id"]),
        name=row["name"],
        patterns=tuple(
            Pattern(regex=item["regex"], flags=item.get("flags", ""), label=item.get("label", ""))
            for item in json.loads(row["patterns"])
        ),
        match_mode=MatchMode(row["match_mode"]),
        targets=frozenset(AutomodTarget(value) for value in json.loads(row["targets"])),
        actions=frozenset(AutomodAction(value) for value in json.loads(row["actions"])),
        warn_points=int(row["warn_points"]),
        priority=int(row["priority"]),
        enabled=bool(row["enabled"]),
        channel_include=load_ids(row["channel_include"], ChannelID),
        channel_exclude=load_ids(row["channel_exclude"], ChannelID),
        role_include=load_ids(row["role_include"], RoleID),
        role_exclude=load_ids(row["role_exclude"], RoleID),
        timeout_duration_ms=row["timeout_duration_ms"],
        dm_template=row["dm_template"],
        created_at=from_ms(row["created_at"]),
    )


class SqliteRuleStore:
    """CRUD for automod rules."""

    def __init__(self, db: ConnectionManager) -> None:
        self._db = db

    async def _fetch(self, query: str, params: tuple) -> List[Rule]:
        async with self._db.read() as conn:
            async with conn.execute(query, params) as cursor:
                rows = await cursor.fetchall()
        return [_row_to_rule(row) for row in rows]

    async def get_enabled_rules(self, guild_id: GuildID) -> List[Rule]:
        return await self._fetch(
            f"SELECT {_COLUMNS} FROM automod_rules WHERE guild_id = ? AND enabled = 1",
            (str(guild_id),),
        )

    async def get_rules(self, guild_id: GuildID) -> List[Rule]:
        """All rules of a guild, enabled or not, in evaluation order."""
        return await self._fetch(
            f"SELECT {_COLUMNS} FROM automod_rules WHERE guild_id = ? ORDER BY priority DESC, created_at, id",
            (str(guild_id),),
        )

    async def get_rule(self, guild_id: GuildID, rule_id: str) -> Optional[Rule]:
        rules = await self._fetch(
            f"SELECT {_COLUMNS} FROM automod_rules WHERE guild_id = ? AND id = ?",
            (str(guild_id), rule_id),
        )
        return rules[0] if rules else None

    async def count_rules(self, guild_id: GuildID) -> int:
        async with self._db.read() as conn:
            async with conn.execute(
                "SELECT COUNT(*) FROM automod_rules WHERE guild_id = ?", (str(guild_id),)
            ) as cursor:
                row = await cursor.fetchone()
        return int(row[0])

    async def save_rule(self, rule: Rule) -> Rule:
        """
        Validate and insert or replace a rule.

        Raises:
            RuleValidationError: If the rule violates an authoring limit.
        """
        validate_rule(rule)

        async with self._db.transaction() as conn:
            await conn.execute(
                f"""
                INSERT OR REPLACE INTO automod_rules ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    rule.id,
                    str(rule.guild_id),
                    rule.name,
                    json.dumps([
                        {"regex": pattern.regex, "flags": pattern.flags, "label": pattern.label}
                        for pattern in rule.patterns
                    ]),
                    rule.match_mode.value,
                    json.dumps(sorted(target.value for target in rule.targets)),
                    json.dumps(sorted(action.value for action in rule.actions)),
                    rule.warn_points,
                    rule.priority,
                    int(rule.enabled),
                    dump_ids(rule.channel_include),
                    dump_ids(rule.channel_exclude),
                    dump_ids(rule.role_include),
                    dump_ids(rule.role_exclude),
                    rule.timeout_duration_ms,
                    rule.dm_template,
                    to_ms(rule.created_at),
                ),
            )
        logger.info("[RULE REPO] Saved rule %s (%s) for guild %s", rule.id, rule.name, rule.guild_id)
        return rule

    async def delete_rule(self, guild_id: GuildID, rule_id: str) -> bool:
        async with self._db.transaction() as conn:
            cursor = await conn.execute(
                "DELETE FROM automod_rules WHERE guild_id = ? AND id = ?",
                (str(guild_id), rule_id),
            )
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("[RULE REPO] Deleted rule %s from guild %s", rule_id, guild_id)
        return deleted


class CachedRuleStore:
    """SqliteRuleStore with a TTL cache in front of ``get_enabled_rules``."""

    def __init__(self, store: SqliteRuleStore, cache: Optional[DatabaseQueryCache] = None) -> None:
        self._store = store
        self._cache = cache or DatabaseQueryCache(ttl_seconds=app_config.rules_cache_ttl_seconds)

    async def get_enabled_rules(self, guild_id: GuildID) -> List[Rule]:
        key = f"rules:{guild_id}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        rules = await self._store.get_enabled_rules(guild_id)
        self._cache.set(key, rules)
        return rules

    async def save_rule(self, rule: Rule) -> Rule:
        saved = await self._store.save_rule(rule)
        self._cache.invalidate(f"rules:{rule.guild_id}")
        return saved

    async def delete_rule(self, guild_id: GuildID, rule_id: str) -> bool:
        deleted = await self._store.delete_rule(guild_id, rule_id)
        self._cache.invalidate(f"rules:{guild_id}")
        return deleted

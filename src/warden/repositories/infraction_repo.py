"""
Repository for the infractions table.

Implements the ``Ledger`` collaborator used by ``InfractionLedger``. Rows are
append-only; the only update is the admin-side deactivation in
``deactivate_user``.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional

import aiosqlite

from warden.database.db_connection import ConnectionManager
from warden.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID
from warden.datatypes.infraction_datatypes import Infraction, InfractionSource, InfractionType
from warden.repositories.row_codec import from_ms, optional_id, optional_str, to_ms
from warden.util.logger import get_logger

logger = get_logger("infraction_repo")

_COLUMNS = (
    "id, guild_id, user_id, source, type, reason, rule_id, rule_name, matched_content, matched_pattern, "
    "points_assigned, total_points_after, escalation_tier, channel_id, message_id, timestamp, expires_at, active"
)

_ACTIVE = "active = 1 AND (expires_at IS NULL OR expires_at > ?)"


def _row_to_infraction(row: aiosqlite.Row) -> Infraction:
    return Infraction(
        id=row["id"],
        guild_id=GuildID(row["guild_id"]),
        user_id=UserID(row["user_id"]),
        source=InfractionSource(row["source"]),
        type=InfractionType(row["type"]),
        reason=row["reason"],
        rule_id=row["rule_id"],
        rule_name=row["rule_name"],
        matched_content=row["matched_content"],
        matched_pattern=row["matched_pattern"],
        points_assigned=int(row["points_assigned"]),
        total_points_after=row["total_points_after"],
        escalation_tier=row["escalation_tier"],
        channel_id=optional_id(row["channel_id"], ChannelID),
        message_id=optional_id(row["message_id"], MessageID),
        timestamp=from_ms(row["timestamp"]),
        expires_at=from_ms(row["expires_at"]),
        active=bool(row["active"]),
    )


def _filters(guild_id: GuildID, user_id: Optional[UserID], type_: Optional[str]) -> tuple[str, list]:
    clauses = ["guild_id = ?"]
    params: list = [str(guild_id)]
    if user_id is not None:
        clauses.append("user_id = ?")
        params.append(str(user_id))
    if type_ is not None:
        clauses.append("type = ?")
        params.append(type_)
    return " AND ".join(clauses), params


class SqliteLedger:
    """SQLite-backed infraction ledger."""

    def __init__(self, db: ConnectionManager) -> None:
        self._db = db

    async def insert(self, infraction: Infraction) -> Infraction:
        async with self._db.transaction() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO infractions (
                    guild_id, user_id, source, type, reason, rule_id, rule_name, matched_content,
                    matched_pattern, points_assigned, total_points_after, escalation_tier,
                    channel_id, message_id, timestamp, expires_at, active
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(infraction.guild_id),
                    str(infraction.user_id),
                    infraction.source.value,
                    infraction.type.value,
                    infraction.reason,
                    infraction.rule_id,
                    infraction.rule_name,
                    infraction.matched_content,
                    infraction.matched_pattern,
                    infraction.points_assigned,
                    infraction.total_points_after,
                    infraction.escalation_tier,
                    optional_str(infraction.channel_id),
                    optional_str(infraction.message_id),
                    to_ms(infraction.timestamp),
                    to_ms(infraction.expires_at),
                    int(infraction.active),
                ),
            )
            row_id = cursor.lastrowid
        return replace(infraction, id=row_id)

    async def get_active_points(self, guild_id: GuildID, user_id: UserID, now: datetime) -> int:
        async with self._db.read() as conn:
            async with conn.execute(
                f"SELECT COALESCE(SUM(points_assigned), 0) FROM infractions "
                f"WHERE guild_id = ? AND user_id = ? AND {_ACTIVE}",
                (str(guild_id), str(user_id), to_ms(now)),
            ) as cursor:
                row = await cursor.fetchone()
        return int(row[0])

    async def has_escalation_at(self, guild_id: GuildID, user_id: UserID, points: int, now: datetime) -> bool:
        async with self._db.read() as conn:
            async with conn.execute(
                f"SELECT 1 FROM infractions WHERE guild_id = ? AND user_id = ? AND type = ? "
                f"AND total_points_after = ? AND {_ACTIVE} LIMIT 1",
                (str(guild_id), str(user_id), InfractionType.ESCALATION.value, points, to_ms(now)),
            ) as cursor:
                return await cursor.fetchone() is not None

    async def list_infractions(
        self,
        guild_id: GuildID,
        user_id: Optional[UserID],
        type_: Optional[str],
        offset: int,
        limit: int,
    ) -> List[Infraction]:
        where, params = _filters(guild_id, user_id, type_)
        async with self._db.read() as conn:
            async with conn.execute(
                f"SELECT {_COLUMNS} FROM infractions WHERE {where} "
                f"ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?",
                (*params, limit, offset),
            ) as cursor:
                rows = await cursor.fetchall()
        return [_row_to_infraction(row) for row in rows]

    async def count_infractions(self, guild_id: GuildID, user_id: Optional[UserID], type_: Optional[str]) -> int:
        where, params = _filters(guild_id, user_id, type_)
        async with self._db.read() as conn:
            async with conn.execute(f"SELECT COUNT(*) FROM infractions WHERE {where}", params) as cursor:
                row = await cursor.fetchone()
        return int(row[0])

    async def deactivate_user(self, guild_id: GuildID, user_id: UserID) -> int:
        async with self._db.transaction() as conn:
            cursor = await conn.execute(
                "UPDATE infractions SET active = 0 WHERE guild_id = ? AND user_id = ? AND active = 1",
                (str(guild_id), str(user_id)),
            )
            return cursor.rowcount

    async def count_by_type(self, guild_id: GuildID) -> Dict[str, int]:
        async with self._db.read() as conn:
            async with conn.execute(
                "SELECT type, COUNT(*) FROM infractions WHERE guild_id = ? GROUP BY type",
                (str(guild_id),),
            ) as cursor:
                rows = await cursor.fetchall()
        return {row[0]: int(row[1]) for row in rows}

    async def count_active(self, guild_id: GuildID) -> int:
        async with self._db.read() as conn:
            async with conn.execute(
                "SELECT COUNT(*) FROM infractions WHERE guild_id = ? AND active = 1",
                (str(guild_id),),
            ) as cursor:
                row = await cursor.fetchone()
        return int(row[0])

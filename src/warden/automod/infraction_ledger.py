"""
Infraction recording and point accounting.

``InfractionLedger`` turns caller-supplied :class:`InfractionFields` into an
immutable :class:`Infraction`, hands it to the ``Ledger`` collaborator for
persistence and reports the user's active point total after the write.

Active points are the sum of ``points_assigned`` over a user's rows that are
still active and not past ``expires_at``. With point decay enabled, rows that
carry points (and escalation rows) expire ``point_decay_days`` after they are
written.
"""

from __future__ import annotations

import math
from dataclasses import fields as dataclass_fields
from datetime import datetime, timedelta, timezone
from typing import Optional

from warden.automod.errors import LedgerWriteError
from warden.automod.interfaces import Ledger
from warden.datatypes.automod_datatypes import AutomodAction, Rule
from warden.datatypes.discord_datatypes import GuildID, UserID
from warden.datatypes.guild_settings import GuildModerationConfig
from warden.datatypes.infraction_datatypes import (
    GuildInfractionStats,
    Infraction,
    InfractionFields,
    InfractionPage,
    InfractionType,
    RecordResult,
)
from warden.util.logger import get_logger

logger = get_logger("infraction_ledger")


def points_for(rule: Rule) -> int:
    """Points a match of ``rule`` assigns: ``warn_points`` if WARN is an action, else 0."""
    if rule.has_action(AutomodAction.WARN):
        return max(rule.warn_points, 0)
    return 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InfractionLedger:
    """Records infractions and answers point and history queries."""

    def __init__(self, ledger: Ledger, clock=_utcnow) -> None:
        self._ledger = ledger
        self._clock = clock

    def _expiry_for(
        self, fields: InfractionFields, now: datetime, config: Optional[GuildModerationConfig]
    ) -> Optional[datetime]:
        if config is None or not config.decay_active:
            return None
        if fields.points_assigned > 0 or fields.type is InfractionType.ESCALATION:
            return now + timedelta(days=config.point_decay_days)
        return None

    async def record_infraction(
        self,
        fields: InfractionFields,
        config: Optional[GuildModerationConfig] = None,
    ) -> RecordResult:
        """Persist a new infraction.

        Args:
            fields: Caller-supplied infraction fields.
            config: Guild config, consulted for point decay.

        Returns:
            RecordResult with the stored row and the user's active total.
            Unless the caller set it, ``total_points_after`` on the row is
            that same total.

        Raises:
            LedgerWriteError: If the current total cannot be read or the
                ledger rejects the write.
        """
        now = self._clock()
        values = {field.name: getattr(fields, field.name) for field in dataclass_fields(fields)}
        values["points_assigned"] = max(fields.points_assigned, 0)

        try:
            active_points = (
                await self._ledger.get_active_points(fields.guild_id, fields.user_id, now)
                + values["points_assigned"]
            )
        except Exception as exc:
            raise LedgerWriteError(
                f"Failed to read active points for user {fields.user_id} in guild {fields.guild_id}: {exc}"
            ) from exc

        if values["total_points_after"] is None:
            values["total_points_after"] = active_points

        infraction = Infraction(
            timestamp=now,
            expires_at=self._expiry_for(fields, now, config),
            **values,
        )

        try:
            stored = await self._ledger.insert(infraction)
        except Exception as exc:
            raise LedgerWriteError(
                f"Failed to record {fields.type.value} infraction for user {fields.user_id} "
                f"in guild {fields.guild_id}: {exc}"
            ) from exc

        logger.debug(
            "[LEDGER] Recorded %s for user %s in guild %s (+%d, active %d)",
            fields.type.value, fields.user_id, fields.guild_id, infraction.points_assigned, active_points,
        )
        return RecordResult(infraction=stored, active_points=active_points)

    async def get_active_points(self, guild_id: GuildID, user_id: UserID) -> int:
        return await self._ledger.get_active_points(guild_id, user_id, self._clock())

    async def has_escalation_at(self, guild_id: GuildID, user_id: UserID, points: int) -> bool:
        """Return True if an active ESCALATION row records exactly ``points``.

        Raises:
            LedgerWriteError: If the ledger cannot be read.
        """
        try:
            return await self._ledger.has_escalation_at(guild_id, user_id, points, self._clock())
        except Exception as exc:
            raise LedgerWriteError(
                f"Failed to read escalations for user {user_id} in guild {guild_id}: {exc}"
            ) from exc

    async def get_user_infractions(
        self,
        guild_id: GuildID,
        user_id: UserID,
        page: int = 1,
        per_page: int = 10,
        type_: Optional[InfractionType] = None,
    ) -> InfractionPage:
        """Return one page of a user's infraction history, newest first."""
        page = max(page, 1)
        per_page = max(per_page, 1)
        type_value = type_.value if type_ is not None else None

        total = await self._ledger.count_infractions(guild_id, user_id, type_value)
        rows = await self._ledger.list_infractions(
            guild_id, user_id, type_value, (page - 1) * per_page, per_page
        )
        return InfractionPage(
            infractions=rows,
            total=total,
            page=page,
            pages=max(math.ceil(total / per_page), 1),
        )

    async def clear_user_infractions(self, guild_id: GuildID, user_id: UserID) -> int:
        """Deactivate all of a user's infractions. Returns the number of rows affected."""
        cleared = await self._ledger.deactivate_user(guild_id, user_id)
        logger.info("[LEDGER] Cleared %d infraction(s) for user %s in guild %s", cleared, user_id, guild_id)
        return cleared

    async def get_guild_stats(self, guild_id: GuildID, recent: int = 10) -> GuildInfractionStats:
        by_type = await self._ledger.count_by_type(guild_id)
        return GuildInfractionStats(
            total_infractions=sum(by_type.values()),
            active_infractions=await self._ledger.count_active(guild_id),
            by_type=by_type,
            recent_infractions=await self._ledger.list_infractions(guild_id, None, None, 0, recent),
        )

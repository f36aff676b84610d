"""
Point-threshold escalation.

After a points-bearing infraction, the user's active total is compared with
the guild's escalation tiers. The highest tier whose threshold is reached
fires once per total: a tier does not fire again while an active ESCALATION
row already records that exact total, so it only re-fires after the user
earns more points.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from warden.automod.action_runner import ActionRunner
from warden.automod.dm_templates import format_duration, render_template, resolve_template
from warden.automod.errors import LedgerWriteError
from warden.automod.infraction_ledger import InfractionLedger
from warden.configuration.app_configuration import app_config
from warden.datatypes.action_datatypes import ActionResult, EscalationResult
from warden.datatypes.automod_datatypes import AutomodAction
from warden.datatypes.discord_datatypes import GuildID
from warden.datatypes.event_datatypes import MemberInfo
from warden.datatypes.guild_settings import EscalationTier, GuildModerationConfig
from warden.datatypes.infraction_datatypes import InfractionFields, InfractionType
from warden.util.logger import get_logger

logger = get_logger("escalation")


def select_tier(tiers: Iterable[EscalationTier], active_points: int) -> Optional[EscalationTier]:
    """Return the highest tier with ``threshold <= active_points``, if any."""
    selected = None
    for tier in sorted(tiers, key=lambda t: t.threshold):
        if tier.threshold <= active_points:
            selected = tier
        else:
            break
    return selected


class EscalationEngine:
    """Checks active points against tiers and runs the selected tier's actions."""

    def __init__(
        self,
        ledger: InfractionLedger,
        runner: ActionRunner,
        escalation_timeout_ms: Optional[int] = None,
    ) -> None:
        self._ledger = ledger
        self._runner = runner
        self._escalation_timeout_ms = (
            escalation_timeout_ms if escalation_timeout_ms is not None else app_config.escalation_timeout_ms
        )

    async def check_and_escalate(
        self,
        guild_id: GuildID,
        member: MemberInfo,
        active_points: int,
        config: GuildModerationConfig,
    ) -> EscalationResult:
        """
        Fire the highest reached tier unless it already fired at this total.

        Args:
            guild_id: Guild of the infraction.
            member: The offending member.
            active_points: Active total right after the triggering infraction.
            config: Guild config holding the tiers.

        Returns:
            EscalationResult; ``triggered`` is False when no tier applies or the
            tier already fired at ``active_points``.

        Raises:
            LedgerWriteError: If earlier escalations cannot be read. No tier
                action has run at that point.
        """
        tier = select_tier(config.escalation_tiers, active_points)
        if tier is None:
            return EscalationResult(triggered=False)

        if await self._ledger.has_escalation_at(guild_id, member.user_id, active_points):
            logger.debug(
                "[ESCALATION] Tier %s already applied to user %s at %d points",
                tier.display_name, member.user_id, active_points,
            )
            return EscalationResult(triggered=False)

        logger.info(
            "[ESCALATION] User %s reached %d points in guild %s, applying tier %s",
            member.user_id, active_points, guild_id, tier.display_name,
        )
        results = await self._execute_tier(guild_id, member, tier, active_points, config)

        try:
            await self._ledger.record_infraction(
                InfractionFields(
                    guild_id=guild_id,
                    user_id=member.user_id,
                    type=InfractionType.ESCALATION,
                    reason=f"Escalation: {tier.display_name}",
                    points_assigned=0,
                    escalation_tier=tier.display_name,
                    total_points_after=active_points,
                ),
                config,
            )
        except LedgerWriteError as exc:
            logger.error("[ESCALATION] Could not record escalation for user %s: %s", member.user_id, exc)

        return EscalationResult(triggered=True, tier_name=tier.display_name, results=tuple(results))

    async def _execute_tier(
        self,
        guild_id: GuildID,
        member: MemberInfo,
        tier: EscalationTier,
        active_points: int,
        config: GuildModerationConfig,
    ) -> List[ActionResult]:
        reason = f"Escalation: {tier.display_name} (points threshold reached)"
        results: List[ActionResult] = []
        timeout_ms = None

        if AutomodAction.TIMEOUT in tier.actions:
            timeout_ms = self._runner.clamp_timeout(tier.duration_ms or self._escalation_timeout_ms)
            results.append(await self._runner.timeout(guild_id, member.user_id, timeout_ms, reason))
        if AutomodAction.KICK in tier.actions:
            results.append(await self._runner.kick(guild_id, member.user_id, reason))
        if AutomodAction.BAN in tier.actions:
            results.append(await self._runner.ban(guild_id, member.user_id, reason))

        notify_action = next(
            (action for action in (AutomodAction.DM, AutomodAction.WARN) if action in tier.actions), None
        )
        if notify_action is not None and config.dm_on_infraction:
            content = render_template(
                resolve_template(None, config),
                {
                    "user": member.mention,
                    "username": member.username,
                    "server": member.guild_name,
                    "rule": tier.display_name,
                    "channel": "N/A",
                    "points": 0,
                    "total_points": active_points,
                    "action": "Escalation",
                    "reason": reason,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "duration": format_duration(timeout_ms) if timeout_ms else None,
                },
            )
            results.append(await self._runner.notify(member.user_id, content, notify_action))

        audit_fields = {
            "user": f"{member.username} ({member.mention or member.user_id})",
            "user_id": str(member.user_id),
            "tier": tier.display_name,
            "actions": ", ".join(sorted(action.value for action in tier.actions)) or "none",
            "total_points": active_points,
        }
        if timeout_ms:
            audit_fields["duration"] = format_duration(timeout_ms)
        results.append(await self._runner.audit(guild_id, "escalation", audit_fields))

        return results

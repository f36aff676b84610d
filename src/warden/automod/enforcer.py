"""
Automod enforcement orchestrator.

Each inbound event passes through the same stages:

1. Gates: bots are ignored, the guild must have automod enabled, the actor
   must resolve to a member without an immune role and the guild must have
   at least one enabled rule.
2. Scoping: rules whose channel/role lists exclude the event are dropped.
3. Matching: the :class:`RuleEngine` picks at most one rule.
4. Actions: message actions (or reaction removal) run in a fixed order,
   each isolated from the others.
5. Recording: the infraction is written, the member is notified and the
   audit log is sent as the rule requests, then escalation is checked.

No handler ever raises. Unexpected errors are logged with the event's
context and the handler returns None.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Tuple

from warden.automod.action_runner import ActionRunner
from warden.automod.dm_templates import format_duration, render_template, resolve_template
from warden.automod.errors import ConfigUnavailableError, LedgerWriteError
from warden.automod.escalation import EscalationEngine
from warden.automod.infraction_ledger import InfractionLedger, points_for
from warden.automod.interfaces import ConfigStore, RuleStore
from warden.automod.rule_engine import RuleEngine
from warden.automod.scoping import is_immune, scope_rules
from warden.datatypes.action_datatypes import EnforcementReport
from warden.datatypes.automod_datatypes import AutomodAction, AutomodTarget, Match, Rule
from warden.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID
from warden.datatypes.event_datatypes import (
    AutomodEvent,
    MemberInfo,
    MemberJoinEvent,
    MemberUpdateEvent,
    MessageEvent,
    ReactionEvent,
)
from warden.datatypes.guild_settings import GuildModerationConfig
from warden.datatypes.infraction_datatypes import InfractionFields, InfractionType
from warden.util.logger import get_logger

logger = get_logger("automod_enforcer")

# Longest matched content copied into an audit log entry.
AUDIT_CONTENT_LIMIT = 200

EnforcementContext = Tuple[GuildModerationConfig, MemberInfo, List[Rule]]


class AutomodEnforcer:
    """Runs the automod pipeline for messages, reactions, joins and nickname changes."""

    def __init__(
        self,
        config_store: ConfigStore,
        rule_store: RuleStore,
        ledger: InfractionLedger,
        escalation: EscalationEngine,
        runner: ActionRunner,
        rule_engine: Optional[RuleEngine] = None,
    ) -> None:
        self._config_store = config_store
        self._rule_store = rule_store
        self._ledger = ledger
        self._escalation = escalation
        self._runner = runner
        self._rule_engine = rule_engine or RuleEngine()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def handle_message(self, event: MessageEvent) -> Optional[EnforcementReport]:
        return await self._guarded(
            self._handle_message, event,
            lambda: f"message {event.message_id} from user {event.author_id} in guild {event.guild_id}",
        )

    async def handle_reaction(self, event: ReactionEvent) -> Optional[EnforcementReport]:
        return await self._guarded(
            self._handle_reaction, event,
            lambda: f"reaction {event.emoji} by user {event.user_id} in guild {event.guild_id}",
        )

    async def handle_member_join(self, event: MemberJoinEvent) -> Optional[EnforcementReport]:
        return await self._guarded(
            self._handle_member_join, event,
            lambda: f"join of user {event.user_id} in guild {event.guild_id}",
        )

    async def handle_member_update(self, event: MemberUpdateEvent) -> Optional[EnforcementReport]:
        return await self._guarded(
            self._handle_member_update, event,
            lambda: f"nickname change of user {event.user_id} in guild {event.guild_id}",
        )

    @staticmethod
    def _describe(event: AutomodEvent, describe: Callable[[], str]) -> str:
        try:
            return describe()
        except Exception:
            return repr(event)

    async def _guarded(
        self,
        handler: Callable[[AutomodEvent], Awaitable[Optional[EnforcementReport]]],
        event: AutomodEvent,
        describe: Callable[[], str],
    ) -> Optional[EnforcementReport]:
        try:
            report = await handler(event)
        except ConfigUnavailableError as exc:
            logger.warning(
                "[AUTOMOD] Skipping %s, configuration unavailable: %s", self._describe(event, describe), exc
            )
            return None
        except Exception:
            logger.exception("[AUTOMOD] Unexpected error while handling %s", self._describe(event, describe))
            return None

        if report is not None and report.failed_actions:
            logger.warning(
                "[AUTOMOD] Partially enforced %s: %s",
                self._describe(event, describe),
                ", ".join(str(result) for result in report.failed_actions),
            )
        return report

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    async def _prepare(
        self,
        guild_id: GuildID,
        user_id: UserID,
        is_bot: bool,
    ) -> Optional[EnforcementContext]:
        """Run the shared gates. Returns None when the event should be ignored.

        Raises:
            ConfigUnavailableError: If config or rules cannot be loaded.
        """
        if is_bot:
            return None

        try:
            config = await self._config_store.get_config(guild_id)
        except Exception as exc:
            raise ConfigUnavailableError(f"config for guild {guild_id}: {exc}") from exc
        if config is None or not config.automod_enabled:
            return None

        member = await self._runner.executor.resolve_member(guild_id, user_id)
        if member is None:
            logger.debug("[AUTOMOD] Could not resolve member %s in guild %s", user_id, guild_id)
            return None
        if member.is_bot:
            return None
        if is_immune(member.role_ids, config.immune_roles):
            logger.debug("[AUTOMOD] Member %s holds an immune role in guild %s", user_id, guild_id)
            return None

        try:
            rules = await self._rule_store.get_enabled_rules(guild_id)
        except Exception as exc:
            raise ConfigUnavailableError(f"rules for guild {guild_id}: {exc}") from exc
        if not rules:
            return None

        return config, member, rules

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _handle_message(self, event: MessageEvent) -> Optional[EnforcementReport]:
        prepared = await self._prepare(event.guild_id, event.author_id, event.author_is_bot)
        if prepared is None:
            return None
        config, member, rules = prepared

        role_ids = event.actor_role_ids or member.role_ids
        match = self._rule_engine.evaluate_message(event, scope_rules(rules, event.channel_id, role_ids))
        if match is None:
            return None

        rule = match.rule
        reason = f"Automod: {rule.name}"
        report = EnforcementReport(event_kind="message", match=match)
        logger.info(
            "[AUTOMOD] Rule %s matched message %s from user %s in guild %s",
            rule.name, event.message_id, event.author_id, event.guild_id,
        )

        if rule.has_action(AutomodAction.DELETE):
            report.add(await self._runner.delete(event.ref))
        if rule.has_action(AutomodAction.TIMEOUT):
            report.add(await self._runner.timeout(event.guild_id, event.author_id, rule.timeout_duration_ms, reason))
        if rule.has_action(AutomodAction.KICK):
            report.add(await self._runner.kick(event.guild_id, event.author_id, reason))
        if rule.has_action(AutomodAction.BAN):
            report.add(await self._runner.ban(event.guild_id, event.author_id, reason))

        await self.record_and_escalate(
            report, event.guild_id, member, config, InfractionType.AUTOMOD_DELETE,
            channel_id=event.channel_id, message_id=event.message_id,
        )
        return report

    async def _handle_reaction(self, event: ReactionEvent) -> Optional[EnforcementReport]:
        prepared = await self._prepare(event.guild_id, event.user_id, event.user_is_bot)
        if prepared is None:
            return None
        config, member, rules = prepared

        ref = event.message_ref
        match = self._rule_engine.evaluate_reaction(event, scope_rules(rules, ref.channel_id, member.role_ids))
        if match is None:
            return None

        report = EnforcementReport(event_kind="reaction", match=match)
        logger.info(
            "[AUTOMOD] Rule %s matched reaction %s by user %s in guild %s",
            match.rule.name, event.emoji, event.user_id, event.guild_id,
        )

        if match.rule.has_action(AutomodAction.REMOVE_REACTION):
            report.add(await self._runner.remove_reaction(ref, event.emoji))

        await self.record_and_escalate(
            report, event.guild_id, member, config, InfractionType.AUTOMOD_REACTION,
            channel_id=ref.channel_id, message_id=ref.message_id,
        )
        return report

    async def _handle_member_join(self, event: MemberJoinEvent) -> Optional[EnforcementReport]:
        prepared = await self._prepare(event.guild_id, event.user_id, event.is_bot)
        if prepared is None:
            return None
        config, member, rules = prepared

        scoped = scope_rules(rules, None, member.role_ids)
        match = self._rule_engine.evaluate_member(event.username, scoped, AutomodTarget.USERNAME)
        return await self._enforce_member_match(match, "member_join", event.guild_id, member, config)

    async def _handle_member_update(self, event: MemberUpdateEvent) -> Optional[EnforcementReport]:
        if not event.nickname_changed:
            return None
        prepared = await self._prepare(event.guild_id, event.user_id, event.is_bot)
        if prepared is None:
            return None
        config, member, rules = prepared

        scoped = scope_rules(rules, None, member.role_ids)
        match = self._rule_engine.evaluate_member(event.new_nickname, scoped, AutomodTarget.NICKNAME)
        return await self._enforce_member_match(match, "member_update", event.guild_id, member, config)

    async def _enforce_member_match(
        self,
        match: Optional[Match],
        event_kind: str,
        guild_id: GuildID,
        member: MemberInfo,
        config: GuildModerationConfig,
    ) -> Optional[EnforcementReport]:
        if match is None:
            return None

        logger.info(
            "[AUTOMOD] Rule %s matched %s of user %s in guild %s",
            match.rule.name, event_kind, member.user_id, guild_id,
        )
        report = EnforcementReport(event_kind=event_kind, match=match)
        await self.record_and_escalate(report, guild_id, member, config, InfractionType.AUTOMOD_USERNAME)
        return report

    # ------------------------------------------------------------------
    # Recording, notification and escalation
    # ------------------------------------------------------------------

    async def record_and_escalate(
        self,
        report: EnforcementReport,
        guild_id: GuildID,
        member: MemberInfo,
        config: GuildModerationConfig,
        infraction_type: InfractionType,
        channel_id: Optional[ChannelID] = None,
        message_id: Optional[MessageID] = None,
    ) -> EnforcementReport:
        """
        Record the infraction for ``report.match``, then notify, log and escalate.

        A ledger failure is logged and leaves the active total unknown; the
        DM and audit log still go out but escalation is skipped for this
        event.

        Args:
            report: Report of the event; updated in place.
            guild_id: Guild of the event.
            member: The offending member.
            config: Guild moderation config.
            infraction_type: Type recorded on the infraction.
            channel_id: Channel of the event, if any.
            message_id: Message of the event, if any.

        Returns:
            The updated report.
        """
        match = report.match
        rule = match.rule
        points = points_for(rule)

        fields = InfractionFields(
            guild_id=guild_id,
            user_id=member.user_id,
            type=infraction_type,
            reason=f"Automod rule: {rule.name}",
            rule_id=rule.id,
            rule_name=rule.name,
            matched_content=match.matched_content,
            matched_pattern=match.matched_pattern.regex,
            points_assigned=points,
            channel_id=channel_id,
            message_id=message_id,
        )

        recorded = False
        try:
            result = await self._ledger.record_infraction(fields, config)
        except LedgerWriteError as exc:
            logger.error("[AUTOMOD] Ledger write failed, escalation skipped: %s", exc)
        else:
            recorded = True
            report.infraction = result.infraction
            report.active_points = result.active_points

        total_label = report.active_points if report.active_points is not None else "unknown"

        notify_action = next(
            (action for action in (AutomodAction.DM, AutomodAction.WARN) if rule.has_action(action)), None
        )
        if notify_action is not None and config.dm_on_infraction:
            content = render_template(
                resolve_template(rule, config),
                {
                    "user": member.mention,
                    "username": member.username,
                    "server": member.guild_name,
                    "rule": rule.name,
                    "channel": f"<#{channel_id}>" if channel_id is not None else "N/A",
                    "points": points,
                    "total_points": total_label,
                    "action": "Automod",
                    "reason": f"Rule violation: {rule.name}",
                    "matched_content": match.matched_content,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "duration": (
                        format_duration(self._runner.clamp_timeout(rule.timeout_duration_ms))
                        if rule.has_action(AutomodAction.TIMEOUT) else None
                    ),
                },
            )
            report.add(await self._runner.notify(member.user_id, content, notify_action))

        if rule.has_action(AutomodAction.LOG):
            report.add(await self._runner.audit(
                guild_id, "automod", self._audit_fields(guild_id, member, match, points, total_label, channel_id, message_id)
            ))

        if recorded and points > 0 and config.escalation_tiers:
            try:
                report.escalation = await self._escalation.check_and_escalate(
                    guild_id, member, report.active_points, config
                )
            except LedgerWriteError as exc:
                logger.error("[AUTOMOD] Ledger unavailable, escalation skipped: %s", exc)

        return report

    @staticmethod
    def _audit_fields(
        guild_id: GuildID,
        member: MemberInfo,
        match: Match,
        points: int,
        total_label,
        channel_id: Optional[ChannelID],
        message_id: Optional[MessageID],
    ) -> dict:
        context = "N/A"
        if channel_id is not None:
            context = f"Channel: <#{channel_id}>"
            if message_id is not None:
                context += f" · https://discord.com/channels/{guild_id}/{channel_id}/{message_id}"

        return {
            "user": f"{member.username} ({member.mention or member.user_id})",
            "user_id": str(member.user_id),
            "rule": match.rule.name,
            "points": f"+{points} (Total: {total_label})",
            "context": context,
            "matched_content": match.matched_content[:AUDIT_CONTENT_LIMIT] or "N/A",
            "matched_pattern": match.matched_pattern.label or match.matched_pattern.regex,
            "actions": ", ".join(sorted(action.value for action in match.rule.actions)),
        }

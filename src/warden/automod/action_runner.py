"""
Fault-tolerant wrappers around the platform executor.

Every enforcement primitive is a single attempt. A failure is logged and
turned into ``ActionResult(ok=False)`` so one failed call (missing
permissions, member already gone, DMs closed) never stops the actions that
follow it.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional

import discord

from warden.automod.interfaces import ActionExecutor
from warden.configuration.app_configuration import app_config
from warden.datatypes.action_datatypes import ActionResult
from warden.datatypes.automod_datatypes import AutomodAction
from warden.datatypes.discord_datatypes import GuildID, UserID
from warden.datatypes.event_datatypes import MessageRef
from warden.util.logger import get_logger

logger = get_logger("action_runner")

# Discord error code for "Cannot send messages to this user".
DM_DISABLED_CODE = 50007


class ActionRunner:
    """Runs executor calls and reports each one as an :class:`ActionResult`."""

    def __init__(
        self,
        executor: ActionExecutor,
        default_timeout_ms: Optional[int] = None,
        max_timeout_ms: Optional[int] = None,
    ) -> None:
        self.executor = executor
        self.default_timeout_ms = default_timeout_ms if default_timeout_ms is not None else app_config.default_timeout_ms
        self.max_timeout_ms = max_timeout_ms if max_timeout_ms is not None else app_config.max_timeout_ms

    def clamp_timeout(self, duration_ms: Optional[int]) -> int:
        """Apply the default duration when unset and cap at the platform maximum."""
        duration = duration_ms if duration_ms and duration_ms > 0 else self.default_timeout_ms
        return min(duration, self.max_timeout_ms)

    async def run(
        self,
        action: AutomodAction,
        call: Callable[[], Awaitable[Any]],
        context: str,
    ) -> ActionResult:
        try:
            await call()
        except discord.Forbidden as exc:
            if action in (AutomodAction.DM, AutomodAction.WARN) and getattr(exc, "code", None) == DM_DISABLED_CODE:
                logger.debug("[ACTION] Cannot DM %s: DMs disabled", context)
            else:
                logger.warning("[ACTION] Missing permissions for %s on %s: %s", action.value, context, exc)
            return ActionResult(action, False, str(exc))
        except Exception as exc:
            logger.error("[ACTION] Failed to %s %s: %s", action.value, context, exc)
            return ActionResult(action, False, str(exc) or type(exc).__name__)

        logger.debug("[ACTION] %s succeeded for %s", action.value, context)
        return ActionResult(action, True)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    async def delete(self, ref: MessageRef) -> ActionResult:
        return await self.run(
            AutomodAction.DELETE,
            lambda: self.executor.delete_message(ref),
            f"message {ref.message_id} in channel {ref.channel_id}",
        )

    async def timeout(
        self, guild_id: GuildID, user_id: UserID, duration_ms: Optional[int], reason: str
    ) -> ActionResult:
        duration = self.clamp_timeout(duration_ms)
        return await self.run(
            AutomodAction.TIMEOUT,
            lambda: self.executor.timeout_member(guild_id, user_id, duration, reason),
            f"user {user_id} in guild {guild_id}",
        )

    async def kick(self, guild_id: GuildID, user_id: UserID, reason: str) -> ActionResult:
        return await self.run(
            AutomodAction.KICK,
            lambda: self.executor.kick_member(guild_id, user_id, reason),
            f"user {user_id} in guild {guild_id}",
        )

    async def ban(self, guild_id: GuildID, user_id: UserID, reason: str) -> ActionResult:
        return await self.run(
            AutomodAction.BAN,
            lambda: self.executor.ban_member(guild_id, user_id, reason),
            f"user {user_id} in guild {guild_id}",
        )

    async def remove_reaction(self, ref: MessageRef, emoji: str) -> ActionResult:
        return await self.run(
            AutomodAction.REMOVE_REACTION,
            lambda: self.executor.remove_all_reactions_of_emoji(ref, emoji),
            f"reaction {emoji} on message {ref.message_id}",
        )

    async def notify(self, user_id: UserID, content: str, action: AutomodAction = AutomodAction.DM) -> ActionResult:
        return await self.run(
            action,
            lambda: self.executor.send_direct_message(user_id, content),
            f"user {user_id}",
        )

    async def audit(self, guild_id: GuildID, category: str, fields: Dict[str, Any]) -> ActionResult:
        return await self.run(
            AutomodAction.LOG,
            lambda: self.executor.send_audit_log(guild_id, category, fields),
            f"{category} audit log in guild {guild_id}",
        )

"""
py-cord implementation of the automod ``ActionExecutor``.

Every method is a single attempt against the Discord API. Errors propagate
to ``ActionRunner``, which logs them and records a failed ``ActionResult``.
Missing messages and members count as already handled where that is the
natural outcome (deleting a message that is already gone).
"""

from __future__ import annotations

import datetime
from typing import Any, Dict, Optional

import discord

from warden.automod.errors import ActionExecutionError
from warden.automod.interfaces import ConfigStore
from warden.datatypes.discord_datatypes import GuildID, RoleID, UserID
from warden.datatypes.event_datatypes import MemberInfo, MessageRef
from warden.util.logger import get_logger

logger = get_logger("discord_executor")

# Discord's per-field value limit.
EMBED_FIELD_LIMIT = 1024

AUDIT_TITLES = {
    "automod": "Automod Triggered",
    "escalation": "Escalation Triggered",
}

AUDIT_COLORS = {
    "automod": discord.Color.orange(),
    "escalation": discord.Color.red(),
}


def build_audit_embed(category: str, fields: Dict[str, Any]) -> discord.Embed:
    """Render audit log fields into an embed, one field per entry."""
    embed = discord.Embed(
        title=AUDIT_TITLES.get(category, category.replace("_", " ").title()),
        color=AUDIT_COLORS.get(category, discord.Color.blurple()),
        timestamp=discord.utils.utcnow(),
    )
    for name, value in fields.items():
        if name == "user_id":
            continue
        text = str(value) if value not in (None, "") else "N/A"
        embed.add_field(
            name=name.replace("_", " ").title(),
            value=text[:EMBED_FIELD_LIMIT],
            inline=name in ("user", "rule", "points", "tier", "total_points"),
        )
    if "user_id" in fields:
        embed.set_footer(text=f"User ID: {fields['user_id']}")
    return embed


class DiscordActionExecutor:
    """Carries out automod actions through a py-cord bot."""

    def __init__(self, bot: discord.Bot, config_store: ConfigStore) -> None:
        self.bot = bot
        self._config_store = config_store

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _guild(self, guild_id: GuildID) -> discord.Guild:
        guild = self.bot.get_guild(guild_id.to_int())
        if guild is None:
            raise ActionExecutionError(f"Guild {guild_id} is not available")
        return guild

    async def _member(self, guild: discord.Guild, user_id: UserID) -> discord.Member:
        member = guild.get_member(user_id.to_int())
        if member is None:
            member = await guild.fetch_member(user_id.to_int())
        return member

    async def _channel(self, ref: MessageRef):
        channel = self.bot.get_channel(ref.channel_id.to_int())
        if channel is None:
            channel = await self.bot.fetch_channel(ref.channel_id.to_int())
        return channel

    async def resolve_member(self, guild_id: GuildID, user_id: UserID) -> Optional[MemberInfo]:
        guild = self.bot.get_guild(guild_id.to_int())
        if guild is None:
            return None
        try:
            member = await self._member(guild, user_id)
        except discord.NotFound:
            return None
        except discord.HTTPException as exc:
            logger.warning("[DISCORD EXECUTOR] Could not fetch member %s in guild %s: %s", user_id, guild_id, exc)
            return None

        return MemberInfo(
            user_id=UserID(member.id),
            username=member.name,
            mention=member.mention,
            role_ids=frozenset(RoleID(role.id) for role in member.roles),
            guild_name=guild.name,
            is_bot=member.bot,
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def delete_message(self, ref: MessageRef) -> None:
        channel = await self._channel(ref)
        try:
            await channel.get_partial_message(ref.message_id.to_int()).delete()
        except discord.NotFound:
            logger.debug("[DISCORD EXECUTOR] Message %s already deleted", ref.message_id)

    async def timeout_member(self, guild_id: GuildID, user_id: UserID, duration_ms: int, reason: str) -> None:
        member = await self._member(self._guild(guild_id), user_id)
        until = discord.utils.utcnow() + datetime.timedelta(milliseconds=duration_ms)
        await member.timeout(until, reason=reason)

    async def kick_member(self, guild_id: GuildID, user_id: UserID, reason: str) -> None:
        await self._guild(guild_id).kick(discord.Object(id=user_id.to_int()), reason=reason)

    async def ban_member(self, guild_id: GuildID, user_id: UserID, reason: str) -> None:
        await self._guild(guild_id).ban(
            discord.Object(id=user_id.to_int()),
            reason=reason,
            delete_message_seconds=0,
        )

    async def remove_all_reactions_of_emoji(self, ref: MessageRef, emoji: str) -> None:
        channel = await self._channel(ref)
        await channel.get_partial_message(ref.message_id.to_int()).clear_reaction(emoji)

    async def send_direct_message(self, user_id: UserID, content: str) -> None:
        user = self.bot.get_user(user_id.to_int())
        if user is None:
            user = await self.bot.fetch_user(user_id.to_int())
        await user.send(content)

    async def send_audit_log(self, guild_id: GuildID, category: str, fields: Dict[str, Any]) -> None:
        config = await self._config_store.get_config(guild_id)
        if config is None or config.log_channel_id is None:
            logger.debug("[DISCORD EXECUTOR] No log channel configured for guild %s", guild_id)
            return

        channel = self.bot.get_channel(config.log_channel_id.to_int())
        if channel is None:
            channel = await self.bot.fetch_channel(config.log_channel_id.to_int())
        await channel.send(embed=build_audit_embed(category, fields))

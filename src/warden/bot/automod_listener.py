"""Automod listener Cog for Warden.

Converts gateway events (messages, reactions, member joins and nickname
changes) into automod events and hands them to the dispatcher. The cog does
no matching or enforcement itself.
"""

from typing import Optional

import discord
from discord.ext import commands

from warden.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, RoleID, UserID
from warden.datatypes.event_datatypes import (
    MemberJoinEvent,
    MemberUpdateEvent,
    MessageEvent,
    MessageRef,
    ReactionEvent,
)
from warden.services.automod_dispatcher import AutomodDispatcher
from warden.util.logger import get_logger

logger = get_logger("automod_listener_cog")


def reaction_emoji_key(emoji: discord.PartialEmoji) -> str:
    """``name:id`` for custom emoji, the character itself for unicode emoji."""
    if emoji.id is not None:
        return f"{emoji.name}:{emoji.id}"
    return emoji.name or ""


def message_to_event(message: discord.Message) -> Optional[MessageEvent]:
    if message.guild is None:
        return None
    roles = getattr(message.author, "roles", None) or []
    return MessageEvent(
        author_id=UserID(message.author.id),
        author_is_bot=message.author.bot,
        guild_id=GuildID(message.guild.id),
        channel_id=ChannelID(message.channel.id),
        message_id=MessageID(message.id),
        content=message.content or "",
        actor_role_ids=frozenset(RoleID(role.id) for role in roles),
        sticker_names=tuple(sticker.name for sticker in message.stickers),
    )


class AutomodListenerCog(commands.Cog):
    """Cog feeding Discord events into the automod dispatcher."""

    def __init__(self, discord_bot_instance, dispatcher: AutomodDispatcher):
        self.bot = discord_bot_instance
        self.dispatcher = dispatcher
        logger.info("[AUTOMOD LISTENER] Automod listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        self.dispatcher.start()
        if self.bot.user:
            logger.info("[AUTOMOD LISTENER] Connected as %s, watching %d guild(s)", self.bot.user, len(self.bot.guilds))

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        event = message_to_event(message)
        if event is None or event.author_is_bot:
            return
        await self.dispatcher.submit(event)

    @commands.Cog.listener(name="on_raw_reaction_add")
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent):
        if payload.guild_id is None:
            return

        user_is_bot = bool(payload.member.bot) if payload.member is not None else False
        if user_is_bot:
            return

        await self.dispatcher.submit(ReactionEvent(
            emoji=reaction_emoji_key(payload.emoji),
            message_ref=MessageRef(
                guild_id=GuildID(payload.guild_id),
                channel_id=ChannelID(payload.channel_id),
                message_id=MessageID(payload.message_id),
            ),
            user_id=UserID(payload.user_id),
            user_is_bot=user_is_bot,
        ))

    @commands.Cog.listener(name="on_member_join")
    async def on_member_join(self, member: discord.Member):
        if member.bot:
            return
        await self.dispatcher.submit(MemberJoinEvent(
            guild_id=GuildID(member.guild.id),
            user_id=UserID(member.id),
            username=member.name,
            is_bot=member.bot,
        ))

    @commands.Cog.listener(name="on_member_update")
    async def on_member_update(self, before: discord.Member, after: discord.Member):
        """Only nickname changes are forwarded."""
        if after.bot or before.nick == after.nick:
            return
        await self.dispatcher.submit(MemberUpdateEvent(
            guild_id=GuildID(after.guild.id),
            user_id=UserID(after.id),
            old_nickname=before.nick,
            new_nickname=after.nick,
            is_bot=after.bot,
        ))


def setup(discord_bot_instance, dispatcher: AutomodDispatcher):
    """Register the AutomodListenerCog with the bot."""
    discord_bot_instance.add_cog(AutomodListenerCog(discord_bot_instance, dispatcher))

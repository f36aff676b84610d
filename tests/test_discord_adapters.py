"""Tests for the py-cord executor and the automod listener cog."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from warden.automod.errors import ActionExecutionError
from warden.bot.automod_listener import AutomodListenerCog, message_to_event, reaction_emoji_key
from warden.bot.discord_executor import EMBED_FIELD_LIMIT, DiscordActionExecutor, build_audit_embed
from warden.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, RoleID, UserID
from warden.datatypes.event_datatypes import (
    MemberJoinEvent,
    MemberUpdateEvent,
    MessageEvent,
    MessageRef,
    ReactionEvent,
)

REF = MessageRef(GuildID(1), ChannelID(2), MessageID(3))


def _not_found() -> discord.NotFound:
    return discord.NotFound(MagicMock(status=404, reason="Not Found"), {"code": 10008, "message": "Unknown Message"})


@pytest.fixture
def guild() -> MagicMock:
    guild = MagicMock()
    guild.name = "Test Guild"
    guild.kick = AsyncMock()
    guild.ban = AsyncMock()
    guild.fetch_member = AsyncMock()
    return guild


@pytest.fixture
def bot(guild) -> MagicMock:
    bot = MagicMock()
    bot.get_guild.return_value = guild
    bot.fetch_channel = AsyncMock()
    bot.fetch_user = AsyncMock()
    return bot


@pytest.fixture
def config_store(make_config) -> AsyncMock:
    store = AsyncMock()
    store.get_config.return_value = make_config(log_channel_id=ChannelID(77))
    return store


@pytest.fixture
def discord_executor(bot, config_store) -> DiscordActionExecutor:
    return DiscordActionExecutor(bot, config_store)


def _member(member_id: int = 5) -> MagicMock:
    member = MagicMock()
    member.id = member_id
    member.name = "someone"
    member.mention = f"<@{member_id}>"
    member.roles = [SimpleNamespace(id=40), SimpleNamespace(id=41)]
    member.bot = False
    member.timeout = AsyncMock()
    return member


class TestBuildAuditEmbed:
    def test_fields_and_footer(self):
        embed = build_audit_embed("automod", {"user": "someone", "user_id": "5", "rule": "Spam", "matched_content": ""})

        assert embed.title == "Automod Triggered"
        assert [field.name for field in embed.fields] == ["User", "Rule", "Matched Content"]
        assert embed.fields[2].value == "N/A"
        assert embed.footer.text == "User ID: 5"

    def test_long_values_are_truncated(self):
        embed = build_audit_embed("escalation", {"context": "x" * 2000})

        assert embed.title == "Escalation Triggered"
        assert len(embed.fields[0].value) == EMBED_FIELD_LIMIT


class TestDiscordActionExecutor:
    @pytest.mark.asyncio
    async def test_resolve_member_from_cache(self, discord_executor, guild):
        guild.get_member.return_value = _member()

        info = await discord_executor.resolve_member(GuildID(1), UserID(5))

        assert info.user_id == UserID(5)
        assert info.role_ids == frozenset({RoleID(40), RoleID(41)})
        assert info.guild_name == "Test Guild"
        guild.fetch_member.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resolve_member_missing(self, discord_executor, guild):
        guild.get_member.return_value = None
        guild.fetch_member.side_effect = _not_found()

        assert await discord_executor.resolve_member(GuildID(1), UserID(5)) is None

    @pytest.mark.asyncio
    async def test_resolve_member_unknown_guild(self, discord_executor, bot):
        bot.get_guild.return_value = None

        assert await discord_executor.resolve_member(GuildID(1), UserID(5)) is None

    @pytest.mark.asyncio
    async def test_delete_ignores_already_deleted_message(self, discord_executor, bot):
        partial = MagicMock()
        partial.delete = AsyncMock(side_effect=_not_found())
        bot.get_channel.return_value.get_partial_message.return_value = partial

        await discord_executor.delete_message(REF)

        bot.get_channel.return_value.get_partial_message.assert_called_once_with(3)

    @pytest.mark.asyncio
    async def test_timeout_member(self, discord_executor, guild):
        member = _member()
        guild.get_member.return_value = member

        await discord_executor.timeout_member(GuildID(1), UserID(5), 60_000, "Automod: x")

        until = member.timeout.await_args.args[0]
        assert until > discord.utils.utcnow()
        assert member.timeout.await_args.kwargs == {"reason": "Automod: x"}

    @pytest.mark.asyncio
    async def test_ban_keeps_message_history(self, discord_executor, guild):
        await discord_executor.ban_member(GuildID(1), UserID(5), "Automod: x")

        target = guild.ban.await_args.args[0]
        assert target.id == 5
        assert guild.ban.await_args.kwargs == {"reason": "Automod: x", "delete_message_seconds": 0}

    @pytest.mark.asyncio
    async def test_kick_in_unknown_guild_raises(self, discord_executor, bot):
        bot.get_guild.return_value = None

        with pytest.raises(ActionExecutionError):
            await discord_executor.kick_member(GuildID(1), UserID(5), "Automod: x")

    @pytest.mark.asyncio
    async def test_remove_reaction(self, discord_executor, bot):
        partial = MagicMock()
        partial.clear_reaction = AsyncMock()
        bot.get_channel.return_value.get_partial_message.return_value = partial

        await discord_executor.remove_all_reactions_of_emoji(REF, "pepe:123")

        partial.clear_reaction.assert_awaited_once_with("pepe:123")

    @pytest.mark.asyncio
    async def test_direct_message_fetches_uncached_user(self, discord_executor, bot):
        user = MagicMock()
        user.send = AsyncMock()
        bot.get_user.return_value = None
        bot.fetch_user.return_value = user

        await discord_executor.send_direct_message(UserID(5), "hello")

        bot.fetch_user.assert_awaited_once_with(5)
        user.send.assert_awaited_once_with("hello")

    @pytest.mark.asyncio
    async def test_audit_log_goes_to_configured_channel(self, discord_executor, bot):
        channel = MagicMock()
        channel.send = AsyncMock()
        bot.get_channel.return_value = channel

        await discord_executor.send_audit_log(GuildID(1), "automod", {"rule": "Spam"})

        bot.get_channel.assert_called_once_with(77)
        assert channel.send.await_args.kwargs["embed"].title == "Automod Triggered"

    @pytest.mark.asyncio
    async def test_audit_log_without_channel_is_skipped(self, discord_executor, bot, config_store, make_config):
        config_store.get_config.return_value = make_config()

        await discord_executor.send_audit_log(GuildID(1), "automod", {"rule": "Spam"})

        bot.get_channel.assert_not_called()


class TestListenerConversions:
    def test_reaction_emoji_key(self):
        assert reaction_emoji_key(discord.PartialEmoji(name="pepe", id=123)) == "pepe:123"
        assert reaction_emoji_key(discord.PartialEmoji(name="\U0001F525")) == "\U0001F525"

    def test_message_to_event(self):
        message = SimpleNamespace(
            id=3,
            guild=SimpleNamespace(id=1),
            channel=SimpleNamespace(id=2),
            author=SimpleNamespace(id=5, bot=False, roles=[SimpleNamespace(id=40)]),
            content="hi",
            stickers=[SimpleNamespace(name="wave")],
        )

        event = message_to_event(message)

        assert event == MessageEvent(
            author_id=UserID(5),
            author_is_bot=False,
            guild_id=GuildID(1),
            channel_id=ChannelID(2),
            message_id=MessageID(3),
            content="hi",
            actor_role_ids=frozenset({RoleID(40)}),
            sticker_names=("wave",),
        )

    def test_direct_messages_are_not_converted(self):
        assert message_to_event(SimpleNamespace(guild=None)) is None


class TestAutomodListenerCog:
    @pytest.fixture
    def dispatcher(self) -> MagicMock:
        dispatcher = MagicMock()
        dispatcher.submit = AsyncMock()
        return dispatcher

    @pytest.fixture
    def cog(self, dispatcher) -> AutomodListenerCog:
        return AutomodListenerCog(MagicMock(), dispatcher)

    @pytest.mark.asyncio
    async def test_bot_messages_are_skipped(self, cog, dispatcher):
        message = SimpleNamespace(
            id=3,
            guild=SimpleNamespace(id=1),
            channel=SimpleNamespace(id=2),
            author=SimpleNamespace(id=5, bot=True, roles=[]),
            content="beep",
            stickers=[],
        )

        await cog.on_message(message)

        dispatcher.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reaction_forwarded(self, cog, dispatcher):
        payload = SimpleNamespace(
            guild_id=1,
            channel_id=2,
            message_id=3,
            user_id=5,
            member=SimpleNamespace(bot=False),
            emoji=discord.PartialEmoji(name="\U0001F525"),
        )

        await cog.on_raw_reaction_add(payload)

        dispatcher.submit.assert_awaited_once_with(ReactionEvent("\U0001F525", REF, UserID(5), False))

    @pytest.mark.asyncio
    async def test_reaction_in_dm_is_skipped(self, cog, dispatcher):
        payload = SimpleNamespace(guild_id=None, member=None)

        await cog.on_raw_reaction_add(payload)

        dispatcher.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_member_join_forwarded(self, cog, dispatcher):
        member = SimpleNamespace(id=5, name="newbie", bot=False, guild=SimpleNamespace(id=1))

        await cog.on_member_join(member)

        dispatcher.submit.assert_awaited_once_with(MemberJoinEvent(GuildID(1), UserID(5), "newbie", False))

    @pytest.mark.asyncio
    async def test_only_nickname_changes_are_forwarded(self, cog, dispatcher):
        before = SimpleNamespace(id=5, nick="old", bot=False, guild=SimpleNamespace(id=1))
        same = SimpleNamespace(id=5, nick="old", bot=False, guild=SimpleNamespace(id=1))
        renamed = SimpleNamespace(id=5, nick="new", bot=False, guild=SimpleNamespace(id=1))

        await cog.on_member_update(before, same)
        await cog.on_member_update(before, renamed)

        dispatcher.submit.assert_awaited_once_with(MemberUpdateEvent(GuildID(1), UserID(5), "old", "new", False))

"""
Inbound platform events consumed by the automod core.

The host's dispatch layer converts gateway payloads into these plain
structures (see ``warden.bot.automod_listener``) so the enforcement pipeline
never touches live Discord objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple, Union

from warden.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, RoleID, UserID


@dataclass(frozen=True, slots=True)
class MessageRef:
    """Address of a message in a guild channel."""

    guild_id: GuildID
    channel_id: ChannelID
    message_id: MessageID


@dataclass(frozen=True, slots=True)
class MessageEvent:
    """A message was created in a guild channel.

    Attributes:
        actor_role_ids: Roles held by the author when the message was sent.
        sticker_names: Names of stickers attached to the message.
    """

    author_id: UserID
    author_is_bot: bool
    guild_id: GuildID
    channel_id: ChannelID
    message_id: MessageID
    content: str
    actor_role_ids: FrozenSet[RoleID] = frozenset()
    sticker_names: Tuple[str, ...] = ()

    @property
    def ref(self) -> MessageRef:
        return MessageRef(self.guild_id, self.channel_id, self.message_id)


@dataclass(frozen=True, slots=True)
class ReactionEvent:
    """A reaction was added to a guild message.

    ``emoji`` is the unicode emoji itself or ``name:id`` for custom emoji.
    """

    emoji: str
    message_ref: MessageRef
    user_id: UserID
    user_is_bot: bool

    @property
    def guild_id(self) -> GuildID:
        return self.message_ref.guild_id


@dataclass(frozen=True, slots=True)
class MemberJoinEvent:
    guild_id: GuildID
    user_id: UserID
    username: str
    is_bot: bool = False


@dataclass(frozen=True, slots=True)
class MemberUpdateEvent:
    """A member's guild nickname may have changed."""

    guild_id: GuildID
    user_id: UserID
    old_nickname: Optional[str]
    new_nickname: Optional[str]
    is_bot: bool = False

    @property
    def nickname_changed(self) -> bool:
        return self.old_nickname != self.new_nickname


AutomodEvent = Union[MessageEvent, ReactionEvent, MemberJoinEvent, MemberUpdateEvent]


def event_guild_id(event: AutomodEvent) -> GuildID:
    """Return the guild an event belongs to."""
    return event.guild_id


@dataclass(slots=True)
class MemberInfo:
    """A guild member as resolved by the action executor.

    Attributes:
        user_id: The member's user id.
        username: Global username (not the nickname).
        mention: Mention string used in notifications.
        role_ids: Roles currently held by the member.
        guild_name: Name of the guild, used in DM templates.
        is_bot: Whether the account is a bot.
    """

    user_id: UserID
    username: str
    mention: str = ""
    role_ids: FrozenSet[RoleID] = field(default_factory=frozenset)
    guild_name: str = ""
    is_bot: bool = False

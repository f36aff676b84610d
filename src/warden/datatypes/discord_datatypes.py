"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit integers that are often moved around as strings
(JSON payloads, SQLite TEXT columns, dashboard forms). These wrappers accept
either form and give the rest of the automod core one consistent type per
kind of identifier, so a channel id can never be compared against a role id
by accident.
"""

from __future__ import annotations

from typing import Union

import discord


class Snowflake:
    """
    Base class for typed snowflake identifiers.

    Instances hash and compare like the underlying integer, so a wrapper can
    be looked up in a set of plain ints (and vice versa). Wrappers of two
    different kinds never compare equal.

    Example:
        >>> GuildID("123") == GuildID(123)
        True
        >>> 123 in {GuildID(123)}
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        if isinstance(value, Snowflake):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        elif isinstance(value, int):
            self._value = value
        elif isinstance(value, str):
            self._value = int(value.strip())
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    def to_int(self) -> int:
        """Return the snowflake as an integer for Discord API calls."""
        return self._value

    def __int__(self) -> int:
        return self._value

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self._value)!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class GuildID(Snowflake):
    """Snowflake of a Discord guild."""

    __slots__ = ()

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildID":
        return cls(guild.id)


class UserID(Snowflake):
    """Snowflake of a Discord user or member."""

    __slots__ = ()

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> "UserID":
        return cls(member.id)


class ChannelID(Snowflake):
    """Snowflake of a guild channel or thread."""

    __slots__ = ()

    @classmethod
    def from_channel(cls, channel: discord.abc.Snowflake) -> "ChannelID":
        return cls(channel.id)


class MessageID(Snowflake):
    """Snowflake of a message."""

    __slots__ = ()

    @classmethod
    def from_message(cls, message: discord.Message) -> "MessageID":
        return cls(message.id)


class RoleID(Snowflake):
    """Snowflake of a guild role."""

    __slots__ = ()

    @classmethod
    def from_role(cls, role: discord.Role) -> "RoleID":
        return cls(role.id)

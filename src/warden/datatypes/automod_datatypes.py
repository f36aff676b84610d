"""
Automod rule types.

This module defines the rule model evaluated by the automod core:
patterns, match modes, targets, actions, the rule itself, and the
``Match`` produced when a rule fires for an event.

Rules are owned by the admin surface; the enforcement core only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, Optional, Tuple

from warden.datatypes.discord_datatypes import ChannelID, GuildID, RoleID


class MatchMode(Enum):
    """How a rule combines its patterns."""

    ANY = "any"
    ALL = "all"

    def __str__(self) -> str:
        return self.value


class AutomodTarget(Enum):
    """The piece of an event a rule inspects."""

    MESSAGE_CONTENT = "message_content"
    MESSAGE_EMOJI = "message_emoji"
    LINK = "link"
    STICKER = "sticker"
    REACTION_EMOJI = "reaction_emoji"
    USERNAME = "username"
    NICKNAME = "nickname"

    def __str__(self) -> str:
        return self.value


MESSAGE_TARGETS: FrozenSet[AutomodTarget] = frozenset({
    AutomodTarget.MESSAGE_CONTENT,
    AutomodTarget.MESSAGE_EMOJI,
    AutomodTarget.LINK,
    AutomodTarget.STICKER,
})


class AutomodAction(Enum):
    """Enforcement operations a rule can request."""

    DELETE = "delete"
    TIMEOUT = "timeout"
    KICK = "kick"
    BAN = "ban"
    WARN = "warn"
    DM = "dm"
    LOG = "log"
    REMOVE_REACTION = "remove_reaction"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Pattern:
    """A single regular expression with explicit flags.

    Attributes:
        regex: Python ``re`` source.
        flags: Flag letters from the whitelist in ``pattern_matcher.VALID_FLAGS``.
        label: Human readable description shown in logs and audit embeds.
    """

    regex: str
    flags: str = ""
    label: str = ""


@dataclass(frozen=True, slots=True)
class Rule:
    """A named pattern + action + scope configuration.

    Attributes:
        id: Stable rule identifier.
        guild_id: Guild that owns the rule.
        name: Display name, used in reasons and notifications.
        patterns: Ordered patterns tested with ``match_mode``.
        match_mode: ANY (OR) or ALL (AND).
        targets: Event parts this rule inspects.
        actions: Enforcement actions to run on a match.
        warn_points: Points assigned when WARN is among the actions.
        priority: Higher priorities are evaluated first.
        enabled: Disabled rules never match.
        channel_include: If non-empty, the rule only applies in these channels.
        channel_exclude: Channels where the rule never applies.
        role_include: If non-empty, the actor must hold at least one of these.
        role_exclude: Actors holding any of these are never matched.
        timeout_duration_ms: Timeout length for the TIMEOUT action.
        dm_template: Per-rule override of the guild's DM template.
        created_at: Creation time; breaks ties between equal priorities.
    """

    id: str
    guild_id: GuildID
    name: str
    patterns: Tuple[Pattern, ...]
    actions: FrozenSet[AutomodAction]
    match_mode: MatchMode = MatchMode.ANY
    targets: FrozenSet[AutomodTarget] = frozenset({AutomodTarget.MESSAGE_CONTENT})
    warn_points: int = 0
    priority: int = 0
    enabled: bool = True
    channel_include: FrozenSet[ChannelID] = frozenset()
    channel_exclude: FrozenSet[ChannelID] = frozenset()
    role_include: FrozenSet[RoleID] = frozenset()
    role_exclude: FrozenSet[RoleID] = frozenset()
    timeout_duration_ms: Optional[int] = None
    dm_template: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def has_action(self, action: AutomodAction) -> bool:
        return action in self.actions

    def sort_key(self) -> Tuple[int, datetime, str]:
        """Evaluation order: priority descending, then oldest first, then id."""
        return (-self.priority, self.created_at, self.id)


@dataclass(frozen=True, slots=True)
class Match:
    """Result of a rule matching an event. One per event at most.

    Attributes:
        rule: The winning rule.
        matched_content: Text that triggered the rule.
        matched_pattern: The pattern reported for the match.
    """

    rule: Rule
    matched_content: str
    matched_pattern: Pattern

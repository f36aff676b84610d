"""
Channel and role scoping for automod rules.

Scoping runs before pattern evaluation; the rule engine only ever sees rules
that are in scope for the event.
"""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Optional

from warden.datatypes.automod_datatypes import Rule
from warden.datatypes.discord_datatypes import ChannelID, RoleID


def is_immune(role_ids: AbstractSet[RoleID], immune_roles: AbstractSet[RoleID]) -> bool:
    """Return True if the actor holds any immune role."""
    if not immune_roles:
        return False
    return not immune_roles.isdisjoint(role_ids)


def is_in_scope(rule: Rule, channel_id: Optional[ChannelID], role_ids: AbstractSet[RoleID]) -> bool:
    """Check a rule's include/exclude lists against an event.

    Channel lists are only consulted when the event happened in a channel
    (messages and reactions); member joins and nickname changes are scoped by
    role alone. Exclude lists always win over include lists.

    Args:
        rule: Rule to check.
        channel_id: Channel of the event, or None for channel-less events.
        role_ids: Roles currently held by the actor.

    Returns:
        True if the rule applies to the event.
    """
    if channel_id is not None:
        if channel_id in rule.channel_exclude:
            return False
        if rule.channel_include and channel_id not in rule.channel_include:
            return False

    if not rule.role_exclude.isdisjoint(role_ids):
        return False
    if rule.role_include and rule.role_include.isdisjoint(role_ids):
        return False

    return True


def scope_rules(
    rules: Iterable[Rule],
    channel_id: Optional[ChannelID],
    role_ids: AbstractSet[RoleID],
) -> List[Rule]:
    """Filter rules down to those in scope for the event."""
    return [rule for rule in rules if is_in_scope(rule, channel_id, role_ids)]

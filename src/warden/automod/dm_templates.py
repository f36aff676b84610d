"""
Infraction DM rendering.

Templates use ``{variable}`` placeholders. Unknown placeholders, and known
ones without a value, are left in the output untouched so a typo in a guild's
template is visible rather than silently blanked.

Available variables: ``user``, ``username``, ``server``, ``rule``,
``channel``, ``points``, ``total_points``, ``action``, ``reason``,
``matched_content``, ``timestamp``, ``duration``.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional

from warden.datatypes.automod_datatypes import Rule
from warden.datatypes.guild_settings import GuildModerationConfig

DEFAULT_DM_TEMPLATE = (
    "You received an automod infraction in **{server}**.\n"
    "Rule: {rule}\n"
    "Reason: {reason}\n"
    "Points: {points} (active total: {total_points})"
)

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


def render_template(template: str, variables: Mapping[str, Any]) -> str:
    """Interpolate ``{name}`` placeholders from ``variables``."""

    def _replace(found: re.Match) -> str:
        value = variables.get(found.group(1))
        return found.group(0) if value is None else str(value)

    return _PLACEHOLDER_RE.sub(_replace, template)


def resolve_template(rule: Optional[Rule], config: GuildModerationConfig) -> str:
    """Pick the template: rule override, then guild default, then built-in."""
    if rule is not None and rule.dm_template:
        return rule.dm_template
    if config.default_dm_template:
        return config.default_dm_template
    return DEFAULT_DM_TEMPLATE


def format_duration(duration_ms: int) -> str:
    """Convert milliseconds to a short label such as ``1h 30m``."""
    seconds = max(duration_ms, 0) // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"

"""
Built-in automod rule presets.

Enabling a preset creates an ordinary, editable rule for the guild; presets
themselves are never evaluated directly.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from warden.datatypes.automod_datatypes import (
    AutomodAction,
    AutomodTarget,
    MatchMode,
    Pattern,
    Rule,
)
from warden.datatypes.discord_datatypes import GuildID

_DELETE_WARN_LOG = frozenset({AutomodAction.DELETE, AutomodAction.WARN, AutomodAction.LOG})


@dataclass(frozen=True, slots=True)
class PresetDefinition:
    id: str
    name: str
    description: str
    target: AutomodTarget
    patterns: Tuple[Pattern, ...]
    actions: FrozenSet[AutomodAction] = _DELETE_WARN_LOG
    warn_points: int = 1
    match_mode: MatchMode = MatchMode.ANY


PRESETS: Dict[str, PresetDefinition] = {
    preset.id: preset
    for preset in (
        PresetDefinition(
            id="invite-links",
            name="Invite Links",
            description="Block Discord invite links (discord.gg, discord.com/invite)",
            target=AutomodTarget.LINK,
            patterns=(
                Pattern(r"(?:discord\.gg|discordapp\.com/invite|discord\.com/invite)/[\w-]+", "i", "Discord invite URL"),
            ),
            warn_points=2,
        ),
        PresetDefinition(
            id="mass-mention",
            name="Mass Mention",
            description="Detect messages with 5 or more user or role mentions",
            target=AutomodTarget.MESSAGE_CONTENT,
            patterns=(
                Pattern(r"(<@!?\d+>.*){5,}", "s", "5+ user mentions"),
                Pattern(r"(<@&\d+>.*){5,}", "s", "5+ role mentions"),
            ),
            warn_points=3,
        ),
        PresetDefinition(
            id="excessive-caps",
            name="Excessive Caps",
            description="Detect mostly uppercase messages of at least 10 characters",
            target=AutomodTarget.MESSAGE_CONTENT,
            patterns=(Pattern(r"(?=.{10,})(?:[^A-Za-z]*[A-Z]){7}[^a-z]*$", "", "70%+ uppercase"),),
        ),
        PresetDefinition(
            id="repeated-text",
            name="Repeated Characters",
            description="Detect 10 or more repeated characters in a row",
            target=AutomodTarget.MESSAGE_CONTENT,
            patterns=(Pattern(r"(.)\1{9,}", "", "10+ repeated chars"),),
        ),
        PresetDefinition(
            id="external-links",
            name="External Links",
            description="Block all non-Discord links",
            target=AutomodTarget.LINK,
            patterns=(
                Pattern(
                    r"https?://(?!(?:discord\.gg|discord\.com|discordapp\.com|cdn\.discordapp\.com|media\.discordapp\.net))\S+",
                    "i",
                    "Non-Discord URL",
                ),
            ),
        ),
        PresetDefinition(
            id="zalgo-text",
            name="Zalgo Text",
            description="Detect combining character abuse",
            target=AutomodTarget.MESSAGE_CONTENT,
            patterns=(Pattern(r"[\u0300-\u036f\u0489]{3,}", "", "Zalgo combining chars"),),
        ),
        PresetDefinition(
            id="phishing-links",
            name="Phishing Links",
            description="Block known phishing and IP logger domains",
            target=AutomodTarget.LINK,
            patterns=(
                Pattern(
                    r"https?://(?:[\w-]+\.)*(?:dlscord|disc0rd|discard|discorcl|dlsc0rd|d1scord|discorde)\.\w+",
                    "i",
                    "Discord typosquat domain",
                ),
                Pattern(
                    r"https?://(?:[\w-]+\.)*(?:steamcommunlty|steamcommurnity|stearnpowered|steancommunity|steamcornmunity)\.\w+",
                    "i",
                    "Steam typosquat domain",
                ),
                Pattern(
                    r"https?://(?:[\w-]+\.)*(?:grabify|iplogger|ipgrabber|blasze|iplis)\.\w+",
                    "i",
                    "IP logger domain",
                ),
            ),
            warn_points=5,
        ),
        PresetDefinition(
            id="scam-text",
            name="Gift Scam Text",
            description="Detect free Nitro and Steam gift scam phrases",
            target=AutomodTarget.MESSAGE_CONTENT,
            patterns=(Pattern(r"free[\s-]*nitro|nitro[\s-]*free|gift[\s-]*nitro|steam[\s-]*gift", "i", "Gift scam text"),),
            warn_points=3,
        ),
    )
}


def get_preset(preset_id: str) -> Optional[PresetDefinition]:
    return PRESETS.get(preset_id)


def preset_to_rule(
    preset: PresetDefinition,
    guild_id: GuildID,
    rule_id: Optional[str] = None,
    enabled: bool = True,
) -> Rule:
    """Instantiate a preset as a guild rule with a fresh id."""
    return Rule(
        id=rule_id or uuid.uuid4().hex,
        guild_id=guild_id,
        name=preset.name,
        patterns=preset.patterns,
        actions=preset.actions,
        match_mode=preset.match_mode,
        targets=frozenset({preset.target}),
        warn_points=preset.warn_points,
        enabled=enabled,
    )

"""
Per-guild moderation configuration read by the automod core.

Database schema:
- moderation_config table with columns: guild_id, automod_enabled, immune_roles,
  escalation_tiers, dm_on_infraction, default_dm_template, point_decay_*,
  log_channel_id
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple

from warden.datatypes.automod_datatypes import AutomodAction
from warden.datatypes.discord_datatypes import ChannelID, GuildID, RoleID


@dataclass(frozen=True, slots=True)
class EscalationTier:
    """A point threshold mapped to an extra set of actions.

    Attributes:
        threshold: Active points at or above which the tier applies.
        actions: Actions run when the tier fires.
        name: Display name used in reasons and audit embeds.
        duration_ms: Timeout length for a TIMEOUT action in this tier.
    """

    threshold: int
    actions: FrozenSet[AutomodAction]
    name: str = ""
    duration_ms: Optional[int] = None

    @property
    def display_name(self) -> str:
        return self.name or f"{self.threshold} points"


@dataclass(slots=True)
class GuildModerationConfig:
    """Persistent per-guild moderation configuration values."""

    guild_id: GuildID
    automod_enabled: bool = False
    immune_roles: FrozenSet[RoleID] = frozenset()
    escalation_tiers: Tuple[EscalationTier, ...] = ()
    dm_on_infraction: bool = True
    default_dm_template: Optional[str] = None
    point_decay_enabled: bool = False
    point_decay_days: int = 30
    log_channel_id: Optional[ChannelID] = None

    @property
    def decay_active(self) -> bool:
        return self.point_decay_enabled and self.point_decay_days > 0


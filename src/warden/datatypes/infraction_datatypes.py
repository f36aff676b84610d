"""
Infraction records and the values returned when recording them.

Infractions are append-only: once built they are frozen and the automod core
never updates or deletes them. Deactivation (``clear_user_infractions``) is
an admin operation handled by the ledger collaborator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from warden.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID


class InfractionSource(Enum):
    AUTOMOD = "automod"

    def __str__(self) -> str:
        return self.value


class InfractionType(Enum):
    """Why an infraction was recorded."""

    AUTOMOD_DELETE = "automod_delete"
    AUTOMOD_REACTION = "automod_reaction"
    AUTOMOD_USERNAME = "automod_username"
    ESCALATION = "escalation"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class InfractionFields:
    """Caller-supplied fields for a new infraction.

    ``InfractionLedger.record_infraction`` stamps the timestamp, expiry and
    running total and turns these into an immutable :class:`Infraction`.
    """

    guild_id: GuildID
    user_id: UserID
    type: InfractionType
    reason: str
    source: InfractionSource = InfractionSource.AUTOMOD
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None
    matched_content: Optional[str] = None
    matched_pattern: Optional[str] = None
    points_assigned: int = 0
    channel_id: Optional[ChannelID] = None
    message_id: Optional[MessageID] = None
    escalation_tier: Optional[str] = None
    total_points_after: Optional[int] = None


@dataclass(frozen=True, slots=True)
class Infraction:
    """An immutable record of a rule violation (or of an escalation).

    Attributes:
        total_points_after: Active point total right after this row was
            written. For ESCALATION rows this is the total the tier fired at,
            which is how re-firing at a stable total is prevented.
        expires_at: When the row stops counting towards active points
            (None means never).
        id: Ledger-assigned row id, None until persisted.
    """

    guild_id: GuildID
    user_id: UserID
    source: InfractionSource
    type: InfractionType
    reason: str
    points_assigned: int
    timestamp: datetime
    rule_id: Optional[str] = None
    rule_name: Optional[str] = None
    matched_content: Optional[str] = None
    matched_pattern: Optional[str] = None
    channel_id: Optional[ChannelID] = None
    message_id: Optional[MessageID] = None
    escalation_tier: Optional[str] = None
    total_points_after: Optional[int] = None
    expires_at: Optional[datetime] = None
    active: bool = True
    id: Optional[int] = None


@dataclass(frozen=True, slots=True)
class RecordResult:
    """Outcome of ``record_infraction``."""

    infraction: Infraction
    active_points: int


@dataclass(slots=True)
class InfractionPage:
    """A page of a user's infraction history, newest first."""

    infractions: List[Infraction]
    total: int
    page: int
    pages: int


@dataclass(slots=True)
class GuildInfractionStats:
    total_infractions: int = 0
    active_infractions: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)
    recent_infractions: List[Infraction] = field(default_factory=list)

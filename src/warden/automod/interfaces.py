"""
Collaborator interfaces consumed by the automod core.

The core never looks anything up globally: stores, the ledger and the
platform executor are passed to constructors. ``warden.repositories`` and
``warden.bot.discord_executor`` provide the production implementations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from warden.datatypes.automod_datatypes import Rule
from warden.datatypes.discord_datatypes import GuildID, UserID
from warden.datatypes.event_datatypes import MemberInfo, MessageRef
from warden.datatypes.guild_settings import GuildModerationConfig
from warden.datatypes.infraction_datatypes import Infraction


class ConfigStore(Protocol):
    async def get_config(self, guild_id: GuildID) -> Optional[GuildModerationConfig]:
        """Return the guild's config, None if the guild has none. May raise."""
        ...


class RuleStore(Protocol):
    async def get_enabled_rules(self, guild_id: GuildID) -> List[Rule]:
        ...


class Ledger(Protocol):
    """Append-only infraction storage."""

    async def insert(self, infraction: Infraction) -> Infraction:
        """Persist the row and return it with its ledger id set."""
        ...

    async def get_active_points(self, guild_id: GuildID, user_id: UserID, now: datetime) -> int:
        ...

    async def has_escalation_at(self, guild_id: GuildID, user_id: UserID, points: int, now: datetime) -> bool:
        """True if an active ESCALATION row exists at exactly ``points``."""
        ...

    async def list_infractions(
        self, guild_id: GuildID, user_id: Optional[UserID], type_: Optional[str], offset: int, limit: int
    ) -> List[Infraction]:
        ...

    async def count_infractions(self, guild_id: GuildID, user_id: Optional[UserID], type_: Optional[str]) -> int:
        ...

    async def deactivate_user(self, guild_id: GuildID, user_id: UserID) -> int:
        ...

    async def count_by_type(self, guild_id: GuildID) -> Dict[str, int]:
        ...

    async def count_active(self, guild_id: GuildID) -> int:
        ...


class ActionExecutor(Protocol):
    """Platform primitives. Every call is a single attempt and may raise."""

    async def resolve_member(self, guild_id: GuildID, user_id: UserID) -> Optional[MemberInfo]:
        ...

    async def delete_message(self, ref: MessageRef) -> None:
        ...

    async def timeout_member(self, guild_id: GuildID, user_id: UserID, duration_ms: int, reason: str) -> None:
        ...

    async def kick_member(self, guild_id: GuildID, user_id: UserID, reason: str) -> None:
        ...

    async def ban_member(self, guild_id: GuildID, user_id: UserID, reason: str) -> None:
        ...

    async def remove_all_reactions_of_emoji(self, ref: MessageRef, emoji: str) -> None:
        ...

    async def send_direct_message(self, user_id: UserID, content: str) -> None:
        ...

    async def send_audit_log(self, guild_id: GuildID, category: str, fields: Dict[str, Any]) -> None:
        ...

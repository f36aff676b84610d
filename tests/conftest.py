"""
Pytest configuration and fixtures for Warden tests.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from warden.database.db_connection import ConnectionManager  # noqa: E402
from warden.database.db_schema import SchemaManager  # noqa: E402
from warden.datatypes.automod_datatypes import AutomodAction, AutomodTarget, Pattern, Rule  # noqa: E402
from warden.datatypes.discord_datatypes import GuildID, RoleID, UserID  # noqa: E402
from warden.datatypes.event_datatypes import MemberInfo  # noqa: E402
from warden.datatypes.guild_settings import GuildModerationConfig  # noqa: E402

GUILD = GuildID(1000)
USER = UserID(2000)
FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def db(tmp_path: Path):
    """An open ConnectionManager over a fresh schema in a temporary file."""
    manager = ConnectionManager()
    await manager.open(tmp_path / "test.db")
    await SchemaManager.initialize_schema(manager.connection)
    yield manager
    await manager.close()


@pytest.fixture
def make_rule():
    """Factory for rules with sensible defaults."""

    def _make(
        rule_id: str = "rule-1",
        name: str = "Bad words",
        patterns=("bad",),
        actions=(AutomodAction.DELETE,),
        targets=(AutomodTarget.MESSAGE_CONTENT,),
        **overrides,
    ) -> Rule:
        return Rule(
            id=rule_id,
            guild_id=overrides.pop("guild_id", GUILD),
            name=name,
            patterns=tuple(p if isinstance(p, Pattern) else Pattern(p) for p in patterns),
            actions=frozenset(actions),
            targets=frozenset(targets),
            created_at=overrides.pop("created_at", FIXED_NOW),
            **overrides,
        )

    return _make


@pytest.fixture
def make_config():
    def _make(**overrides) -> GuildModerationConfig:
        overrides.setdefault("automod_enabled", True)
        return GuildModerationConfig(guild_id=overrides.pop("guild_id", GUILD), **overrides)

    return _make


@pytest.fixture
def member() -> MemberInfo:
    return MemberInfo(
        user_id=USER,
        username="offender",
        mention=f"<@{USER}>",
        role_ids=frozenset({RoleID(30)}),
        guild_name="Test Guild",
    )


@pytest.fixture
def executor(member: MemberInfo) -> AsyncMock:
    """An ActionExecutor double that resolves every user to ``member``."""
    fake = AsyncMock()
    fake.resolve_member.return_value = member
    return fake

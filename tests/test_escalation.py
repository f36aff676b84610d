"""Tests for tier selection and escalation against a real ledger."""

from unittest.mock import AsyncMock

import pytest

from warden.automod.action_runner import ActionRunner
from warden.automod.escalation import EscalationEngine, select_tier
from warden.automod.infraction_ledger import InfractionLedger
from warden.datatypes.automod_datatypes import AutomodAction
from warden.datatypes.discord_datatypes import GuildID
from warden.datatypes.guild_settings import EscalationTier
from warden.datatypes.infraction_datatypes import InfractionType
from warden.repositories.infraction_repo import SqliteLedger

GUILD = GuildID(1000)

TIERS = (
    EscalationTier(5, frozenset({AutomodAction.DM}), "Warning"),
    EscalationTier(10, frozenset({AutomodAction.TIMEOUT, AutomodAction.DM}), "Mute"),
    EscalationTier(20, frozenset({AutomodAction.BAN}), "Ban"),
)


@pytest.fixture
def ledger(db) -> InfractionLedger:
    return InfractionLedger(SqliteLedger(db))


@pytest.fixture
def engine(ledger, executor) -> EscalationEngine:
    runner = ActionRunner(executor, default_timeout_ms=60_000, max_timeout_ms=28 * 24 * 3_600_000)
    return EscalationEngine(ledger, runner, escalation_timeout_ms=3_600_000)


class TestSelectTier:
    def test_highest_reached_tier(self):
        assert select_tier(TIERS, 15).name == "Mute"
        assert select_tier(TIERS, 20).name == "Ban"
        assert select_tier(TIERS, 500).name == "Ban"

    def test_below_every_threshold(self):
        assert select_tier(TIERS, 4) is None

    def test_unsorted_tiers(self):
        assert select_tier(tuple(reversed(TIERS)), 12).name == "Mute"


class TestCheckAndEscalate:
    @pytest.mark.asyncio
    async def test_fires_selected_tier_and_records_it(self, engine, ledger, executor, member, make_config):
        config = make_config(escalation_tiers=TIERS)

        result = await engine.check_and_escalate(GUILD, member, 15, config)

        assert result.triggered is True
        assert result.tier_name == "Mute"
        executor.timeout_member.assert_awaited_once_with(
            GUILD, member.user_id, 3_600_000, "Escalation: Mute (points threshold reached)"
        )
        executor.ban_member.assert_not_awaited()
        executor.send_direct_message.assert_awaited_once()

        history = await ledger.get_user_infractions(GUILD, member.user_id)
        (row,) = history.infractions
        assert row.type is InfractionType.ESCALATION
        assert row.points_assigned == 0
        assert row.escalation_tier == "Mute"
        assert row.total_points_after == 15

    @pytest.mark.asyncio
    async def test_does_not_refire_at_same_total(self, engine, executor, member, make_config):
        config = make_config(escalation_tiers=TIERS)

        await engine.check_and_escalate(GUILD, member, 15, config)
        again = await engine.check_and_escalate(GUILD, member, 15, config)
        later = await engine.check_and_escalate(GUILD, member, 16, config)

        assert again.triggered is False
        assert later.triggered is True
        assert executor.timeout_member.await_count == 2

    @pytest.mark.asyncio
    async def test_no_tier_reached(self, engine, executor, member, make_config):
        result = await engine.check_and_escalate(GUILD, member, 3, make_config(escalation_tiers=TIERS))

        assert result.triggered is False
        executor.send_audit_log.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_audit_log_is_always_sent(self, engine, executor, member, make_config):
        await engine.check_and_escalate(GUILD, member, 25, make_config(escalation_tiers=TIERS))

        executor.send_audit_log.assert_awaited_once()
        guild_id, category, fields = executor.send_audit_log.await_args.args
        assert category == "escalation"
        assert fields["tier"] == "Ban"
        assert fields["total_points"] == 25

    @pytest.mark.asyncio
    async def test_dm_respects_guild_setting(self, engine, executor, member, make_config):
        config = make_config(escalation_tiers=TIERS, dm_on_infraction=False)

        await engine.check_and_escalate(GUILD, member, 6, config)

        executor.send_direct_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_tier_duration_overrides_default(self, engine, executor, member, make_config):
        tiers = (EscalationTier(1, frozenset({AutomodAction.TIMEOUT}), "Short", duration_ms=30_000),)

        await engine.check_and_escalate(GUILD, member, 1, make_config(escalation_tiers=tiers))

        assert executor.timeout_member.await_args.args[2] == 30_000

    @pytest.mark.asyncio
    async def test_failed_action_does_not_stop_the_tier(self, engine, executor, member, make_config):
        executor.timeout_member.side_effect = RuntimeError("missing member")

        result = await engine.check_and_escalate(GUILD, member, 10, make_config(escalation_tiers=TIERS))

        assert result.triggered is True
        assert [r.ok for r in result.results] == [False, True, True]
        executor.send_audit_log.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ledger_failure_still_reports_trigger(self, executor, member, make_config):
        store = AsyncMock()
        store.has_escalation_at.return_value = False
        store.insert.side_effect = RuntimeError("locked")
        engine = EscalationEngine(InfractionLedger(store), ActionRunner(executor, 60_000, 3_600_000), 3_600_000)

        result = await engine.check_and_escalate(GUILD, member, 10, make_config(escalation_tiers=TIERS))

        assert result.triggered is True

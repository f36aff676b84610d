"""Tests for rule validation, pattern building, presets and DM templates."""

import pytest

from warden.automod.dm_templates import (
    DEFAULT_DM_TEMPLATE,
    format_duration,
    render_template,
    resolve_template,
)
from warden.automod.errors import InvalidPatternError, RuleValidationError
from warden.automod.pattern_matcher import test_patterns as run_patterns
from warden.automod.presets import PRESETS, get_preset, preset_to_rule
from warden.automod.rule_validation import MAX_DM_TEMPLATE_LENGTH, build_patterns, validate_rule
from warden.datatypes.automod_datatypes import AutomodAction, Pattern
from warden.datatypes.discord_datatypes import ChannelID, GuildID


class TestBuildPatterns:
    def test_wildcards_then_raw_patterns(self):
        patterns = build_patterns("spam*", [{"regex": r"\d{5,}", "flags": "", "label": "long number"}])

        assert [p.label for p in patterns] == ['Starts with "spam"', "long number"]

    def test_raw_pattern_label_defaults_to_regex(self):
        (pattern,) = build_patterns(raw_patterns=[{"regex": "abc"}])

        assert pattern == Pattern("abc", "", "abc")

    def test_missing_regex_rejected(self):
        with pytest.raises(InvalidPatternError):
            build_patterns(raw_patterns=[{"flags": "i"}])

    def test_invalid_raw_regex_rejected(self):
        with pytest.raises(InvalidPatternError, match="Invalid regex"):
            build_patterns(raw_patterns=[{"regex": "([a-"}])

    def test_nothing_given_yields_empty_list(self):
        assert build_patterns() == []


class TestValidateRule:
    def test_valid_rule_is_returned(self, make_rule):
        rule = make_rule()

        assert validate_rule(rule) is rule

    def test_empty_actions_rejected(self, make_rule):
        with pytest.raises(RuleValidationError, match="actions cannot be empty"):
            validate_rule(make_rule(actions=()))

    def test_remove_reaction_requires_reaction_target(self, make_rule):
        rule = make_rule(actions=(AutomodAction.REMOVE_REACTION,))

        with pytest.raises(RuleValidationError, match="reaction_emoji"):
            validate_rule(rule)

    def test_all_errors_are_listed(self, make_rule):
        rule = make_rule(name="", patterns=(), warn_points=-1, timeout_duration_ms=0)

        with pytest.raises(RuleValidationError) as exc_info:
            validate_rule(rule)

        message = str(exc_info.value)
        assert "name is required" in message
        assert "at least one pattern is required" in message
        assert "warn_points cannot be negative" in message
        assert "timeout_duration_ms must be positive" in message

    def test_invalid_stored_pattern_rejected(self, make_rule):
        with pytest.raises(RuleValidationError, match="Invalid regex"):
            validate_rule(make_rule(patterns=("(open",)))

    def test_scope_list_limit(self, make_rule):
        rule = make_rule(channel_include=frozenset(ChannelID(i) for i in range(1, 102)))

        with pytest.raises(RuleValidationError, match="channel_include cannot exceed 100"):
            validate_rule(rule)

    def test_dm_template_length(self, make_rule):
        with pytest.raises(RuleValidationError, match="dm_template"):
            validate_rule(make_rule(dm_template="x" * (MAX_DM_TEMPLATE_LENGTH + 1)))


class TestPresets:
    @pytest.mark.parametrize("preset_id", sorted(PRESETS))
    def test_every_preset_builds_a_valid_rule(self, preset_id):
        rule = preset_to_rule(get_preset(preset_id), GuildID(1))

        assert validate_rule(rule) is rule
        assert rule.targets == frozenset({PRESETS[preset_id].target})

    def test_unknown_preset(self):
        assert get_preset("does-not-exist") is None

    def test_each_rule_gets_a_fresh_id(self):
        preset = get_preset("invite-links")

        first = preset_to_rule(preset, GuildID(1))
        second = preset_to_rule(preset, GuildID(1))

        assert first.id != second.id
        assert preset_to_rule(preset, GuildID(1), rule_id="fixed").id == "fixed"

    @pytest.mark.parametrize(
        "preset_id,content,expected",
        [
            ("invite-links", "join discord.gg/abc123", True),
            ("invite-links", "discord is fun", False),
            ("excessive-caps", "THIS IS ALL CAPS TEXT", True),
            ("excessive-caps", "this is a normal sentence", False),
            ("repeated-text", "heyyyyyyyyyyyy", True),
            ("zalgo-text", "z\u0300\u0301\u0302algo", True),
            ("scam-text", "get FREE NITRO here", True),
            ("phishing-links", "https://dlscord.gift/claim", True),
            ("external-links", "https://discord.com/channels/1", False),
            ("external-links", "https://example.org", True),
        ],
    )
    def test_preset_patterns(self, preset_id, content, expected):
        preset = get_preset(preset_id)

        assert run_patterns(preset.patterns, content, preset.match_mode).matched is expected


class TestDmTemplates:
    def test_render_replaces_known_values(self):
        assert render_template("{user} broke {rule}", {"user": "<@1>", "rule": "No spam"}) == "<@1> broke No spam"

    def test_unknown_and_missing_placeholders_are_kept(self):
        rendered = render_template("{rule} {nope} {duration}", {"rule": "R", "duration": None})

        assert rendered == "R {nope} {duration}"

    def test_resolve_prefers_rule_then_guild_then_default(self, make_rule, make_config):
        config = make_config(default_dm_template="guild {rule}")

        assert resolve_template(make_rule(dm_template="rule {rule}"), config) == "rule {rule}"
        assert resolve_template(make_rule(), config) == "guild {rule}"
        assert resolve_template(None, make_config()) == DEFAULT_DM_TEMPLATE

    @pytest.mark.parametrize(
        "duration_ms,label",
        [
            (500, "0s"),
            (45_000, "45s"),
            (90_000, "1m 30s"),
            (5_400_000, "1h 30m"),
            (90_000_000, "1d 1h"),
        ],
    )
    def test_format_duration(self, duration_ms, label):
        assert format_duration(duration_ms) == label

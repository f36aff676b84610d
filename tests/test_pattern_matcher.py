"""Tests for wildcard compilation, regex validation and pattern matching."""

import pytest

from warden.automod.errors import InvalidPatternError
from warden.automod.pattern_matcher import (
    compile_wildcard,
    describe_wildcard,
    extract_emoji,
    extract_urls,
    flags_to_re,
    test_patterns as run_patterns,
    validate_regex,
)
from warden.datatypes.automod_datatypes import MatchMode, Pattern


class TestCompileWildcard:
    def test_tokens_become_anchored_patterns_in_order(self):
        patterns = compile_wildcard("ban*word, sp?m")

        assert [p.regex for p in patterns] == [r"\bban.*word\b", r"\bsp.m\b"]
        assert all(p.flags == "i" for p in patterns)

    @pytest.mark.parametrize(
        "content, matched",
        [("banword", True), ("banXword", True), ("anword", False)],
    )
    def test_inner_star_matches_any_run_of_characters(self, content, matched):
        patterns = compile_wildcard("ban*word")

        assert run_patterns(patterns, content).matched is matched

    def test_leading_and_trailing_star_drop_word_boundaries(self):
        (pattern,) = compile_wildcard("*spam*")

        assert pattern.regex == ".*spam.*"
        assert pattern.label == 'Contains "spam"'

    def test_compiled_pattern_matches_whole_words_only(self):
        patterns = compile_wildcard("spam")

        assert run_patterns(patterns, "this is SPAM!").matched is True
        assert run_patterns(patterns, "spammer here").matched is False

    def test_escaped_wildcard_is_literal(self):
        (pattern,) = compile_wildcard(r"wh\*t")

        assert run_patterns([pattern], "wh*t").matched is True
        assert run_patterns([pattern], "what").matched is False

    def test_empty_input_rejected(self):
        with pytest.raises(InvalidPatternError):
            compile_wildcard("   ")

    def test_every_bad_token_is_reported(self):
        with pytest.raises(InvalidPatternError) as exc_info:
            compile_wildcard("a,,b")

        assert len(exc_info.value.errors) == 3
        assert any("Empty pattern at position 2" in error for error in exc_info.value.errors)

    def test_token_of_only_wildcards_rejected(self):
        with pytest.raises(InvalidPatternError, match="non-wildcard"):
            compile_wildcard("*?*")

    def test_dangling_escape_rejected(self):
        with pytest.raises(InvalidPatternError, match="dangling escape"):
            compile_wildcard("abc\\")

    @pytest.mark.parametrize(
        "token,label",
        [
            ("*bad*", 'Contains "bad"'),
            ("*bad", 'Ends with "bad"'),
            ("bad*", 'Starts with "bad"'),
            ("bad", 'Exact word "bad"'),
        ],
    )
    def test_describe_wildcard(self, token, label):
        assert describe_wildcard(token) == label


class TestValidateRegex:
    def test_valid_pattern(self):
        result = validate_regex(r"\bfoo\b", "im")

        assert result.valid is True
        assert result.error is None

    def test_empty_pattern(self):
        assert validate_regex("").valid is False

    def test_unbalanced_pattern(self):
        result = validate_regex("(abc")

        assert result.valid is False
        assert "Invalid regex" in result.error

    def test_unknown_flag(self):
        result = validate_regex("abc", "g")

        assert result.valid is False
        assert "'g'" in result.error

    def test_length_limit(self):
        result = validate_regex("abcdef", max_length=5)

        assert result.valid is False
        assert "maximum length of 5" in result.error

    def test_flags_to_re_rejects_unknown_letters(self):
        with pytest.raises(InvalidPatternError):
            flags_to_re("iz")


class TestMatching:
    def test_any_mode_reports_first_matching_pattern(self):
        patterns = [Pattern("nope"), Pattern("fo+"), Pattern("bar")]

        result = run_patterns(patterns, "foo bar", MatchMode.ANY)

        assert result.matched is True
        assert result.matched_pattern == patterns[1]
        assert result.matched_text == "foo"

    def test_all_mode_requires_every_pattern(self):
        patterns = [Pattern("foo"), Pattern("bar")]

        assert run_patterns(patterns, "foo only", MatchMode.ALL).matched is False

        result = run_patterns(patterns, "bar then foo", MatchMode.ALL)
        assert result.matched is True
        assert result.matched_pattern == patterns[0]
        assert result.matched_text == "foo"

    def test_matching_is_case_sensitive_without_flags(self):
        assert run_patterns([Pattern("bad")], "BAD").matched is False
        assert run_patterns([Pattern("bad", "i")], "BAD").matched is True

    def test_empty_pattern_list_never_matches(self):
        assert run_patterns([], "anything").matched is False

    def test_content_is_truncated_before_matching(self):
        content = "x" * 20 + "bad"

        assert run_patterns([Pattern("bad")], content, max_input_length=20).matched is False
        assert run_patterns([Pattern("bad")], content, max_input_length=100).matched is True

    def test_uncompilable_pattern_counts_as_no_match(self):
        patterns = [Pattern("(broken"), Pattern("ok")]

        result = run_patterns(patterns, "ok")

        assert result.matched_pattern == patterns[1]


class TestExtractors:
    def test_extract_emoji_unicode_then_custom(self):
        assert extract_emoji("hi \U0001F600 there <:pepe:123> <a:dance:456>") == [
            "\U0001F600",
            "pepe:123",
            "dance:456",
        ]

    def test_extract_urls(self):
        content = "see https://example.com/a?b=1 and http://foo.bar not ftp://x"

        assert extract_urls(content) == ["https://example.com/a?b=1", "http://foo.bar"]

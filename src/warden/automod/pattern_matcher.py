"""
Pattern compilation, validation and matching for automod rules.

Features:
- ``compile_wildcard``: turns comma-separated wildcard tokens (``*`` = any run
  of characters, ``?`` = any single character) into anchored regex patterns.
- ``validate_regex``: authoring-time check of a raw regex and its flags.
- ``test_patterns``: evaluates a pattern set against content under ANY/ALL.
- Content extractors for emoji and link targets.

Matching is exact: no case folding or whitespace normalisation happens unless
the pattern's own flags ask for it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Sequence

from warden.automod.errors import InvalidPatternError
from warden.configuration.app_configuration import app_config
from warden.datatypes.automod_datatypes import MatchMode, Pattern
from warden.util.logger import get_logger

logger = get_logger("pattern_matcher")

# Flag letters accepted on a Pattern. "u" is Python's default for str patterns.
FLAG_BITS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "a": re.ASCII,
    "u": 0,
}
VALID_FLAGS = frozenset(FLAG_BITS)

CUSTOM_EMOJI_RE = re.compile(r"<(a)?:(\w+):(\d+)>")
UNICODE_EMOJI_RE = re.compile(
    "[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF\U0001F1E0-\U0001F1FF"
    "\u2600-\u26FF\u2700-\u27BF\U0001F900-\U0001F9FF\U0001FA00-\U0001FAFF\uFE00-\uFE0F\u200D\u20E3]+"
)
URL_RE = re.compile(r"https?://[^\s<>]+", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class RegexValidation:
    valid: bool
    error: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PatternTestResult:
    """Outcome of ``test_patterns``.

    Attributes:
        matched: Whether the pattern set matched under the match mode.
        matched_pattern: The pattern reported for the match (first match in
            ANY mode, first pattern in ALL mode).
        matched_text: Text matched by ``matched_pattern``.
    """

    matched: bool
    matched_pattern: Optional[Pattern] = None
    matched_text: Optional[str] = None


# ---------------------------------------------------------------------------
# Flags and compilation
# ---------------------------------------------------------------------------

def flags_to_re(flags: str) -> int:
    """Convert flag letters into ``re`` flag bits.

    Raises:
        InvalidPatternError: If a letter is not in the whitelist.
    """
    bits = 0
    for flag in flags or "":
        if flag not in FLAG_BITS:
            raise InvalidPatternError(f"Invalid regex flag: '{flag}'")
        bits |= FLAG_BITS[flag]
    return bits


@lru_cache(maxsize=2048)
def compile_pattern(regex: str, flags: str = "") -> re.Pattern:
    """Compile and cache a pattern. Raises ``re.error`` or ``InvalidPatternError``."""
    return re.compile(regex, flags_to_re(flags))


def validate_regex(pattern: str, flags: str = "", max_length: Optional[int] = None) -> RegexValidation:
    """Validate a regex pattern and its flags without running it.

    Args:
        pattern: Regex source.
        flags: Flag letters; anything outside ``VALID_FLAGS`` is rejected.
        max_length: Longest accepted pattern, defaults to the app config value.

    Returns:
        RegexValidation with ``valid`` False and an ``error`` message on rejection.
    """
    if not pattern:
        return RegexValidation(False, "Pattern cannot be empty")

    limit = app_config.max_regex_length if max_length is None else max_length
    if len(pattern) > limit:
        return RegexValidation(False, f"Pattern exceeds maximum length of {limit} characters")

    for flag in flags or "":
        if flag not in VALID_FLAGS:
            return RegexValidation(False, f"Invalid regex flag: '{flag}'")

    try:
        re.compile(pattern, flags_to_re(flags))
    except re.error as exc:
        return RegexValidation(False, f"Invalid regex: {exc}")
    except ValueError as exc:
        return RegexValidation(False, f"Invalid flag combination: {exc}")
    return RegexValidation(True)


# ---------------------------------------------------------------------------
# Wildcards
# ---------------------------------------------------------------------------

def _is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def _wildcard_token_to_regex(token: str) -> str:
    """Translate one wildcard token. ``\\`` escapes the next character."""
    parts: List[str] = []
    # (is_literal, char) for the first and last element, used for anchoring
    first: Optional[tuple] = None
    last: Optional[tuple] = None

    index = 0
    while index < len(token):
        char = token[index]
        if char == "\\":
            if index + 1 >= len(token):
                raise InvalidPatternError(f'Pattern "{token}" ends with a dangling escape')
            literal = token[index + 1]
            parts.append(re.escape(literal))
            element = (True, literal)
            index += 2
        elif char == "*":
            if not (parts and parts[-1] == ".*"):
                parts.append(".*")
            element = (False, char)
            index += 1
        elif char == "?":
            parts.append(".")
            element = (False, char)
            index += 1
        else:
            parts.append(re.escape(char))
            element = (True, char)
            index += 1

        if first is None:
            first = element
        last = element

    prefix = r"\b" if first and first[0] and _is_word_char(first[1]) else ""
    suffix = r"\b" if last and last[0] and _is_word_char(last[1]) else ""
    return f"{prefix}{''.join(parts)}{suffix}"


def describe_wildcard(token: str) -> str:
    """Human readable label for a wildcard token."""
    starts = token.startswith("*")
    ends = token.endswith("*") and not token.endswith("\\*")
    core = token.strip("*")

    if starts and ends:
        return f'Contains "{core}"'
    if starts:
        return f'Ends with "{core}"'
    if ends:
        return f'Starts with "{core}"'
    return f'Exact word "{core}"'


def compile_wildcard(wildcard_input: str, flags: str = "i") -> List[Pattern]:
    """Parse a comma-separated wildcard string into regex patterns.

    Input ``"ban*word, sp?m"`` yields two patterns,
    ``\\bban.*word\\b`` and ``\\bsp.m\\b``. Every token must carry at least
    one literal character; empty tokens (``a,,b`` or a trailing comma) are
    rejected as unbalanced input.

    Args:
        wildcard_input: Comma-separated wildcard tokens.
        flags: Flags stored on every produced pattern.

    Returns:
        List of compiled-and-validated patterns, in input order.

    Raises:
        InvalidPatternError: With one message per rejected token.
    """
    if not wildcard_input or not wildcard_input.strip():
        raise InvalidPatternError("No patterns provided")

    errors: List[str] = []
    patterns: List[Pattern] = []

    for position, raw in enumerate(wildcard_input.split(","), start=1):
        token = raw.strip()
        if not token:
            errors.append(f"Empty pattern at position {position}")
            continue

        literal = token.replace("\\", "").replace("*", "").replace("?", "")
        if not literal:
            errors.append(f'Pattern "{token}" must contain at least one non-wildcard character')
            continue
        if len(literal) < 2 and "*" not in token and "?" not in token:
            errors.append(f'Pattern "{token}" is too short, use at least 2 characters')
            continue

        try:
            regex = _wildcard_token_to_regex(token)
            re.compile(regex, flags_to_re(flags))
        except InvalidPatternError as exc:
            errors.append(str(exc))
            continue
        except re.error as exc:
            errors.append(f'Pattern "{token}" generated invalid regex: {exc}')
            continue

        patterns.append(Pattern(regex=regex, flags=flags, label=describe_wildcard(token)))

    if errors:
        raise InvalidPatternError("; ".join(errors), errors)
    return patterns


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def _search(pattern: Pattern, content: str) -> Optional[str]:
    """Return the matched text, or None. Broken patterns count as no match."""
    try:
        compiled = compile_pattern(pattern.regex, pattern.flags)
    except (re.error, InvalidPatternError, ValueError) as exc:
        logger.warning("[PATTERN MATCHER] Skipping uncompilable pattern %r: %s", pattern.regex, exc)
        return None
    found = compiled.search(content)
    return found.group(0) if found else None


def test_patterns(
    patterns: Sequence[Pattern],
    content: str,
    match_mode: MatchMode = MatchMode.ANY,
    max_input_length: Optional[int] = None,
) -> PatternTestResult:
    """Test a pattern set against content.

    ANY is OR and stops at the first match. ALL is AND, evaluated left to
    right, and stops at the first pattern that does not match; when every
    pattern matches, the first pattern is reported.

    Args:
        patterns: Patterns in rule order.
        content: Text to test.
        match_mode: ANY or ALL.
        max_input_length: Content is truncated to this length before matching.

    Returns:
        PatternTestResult describing the outcome.
    """
    if not patterns:
        return PatternTestResult(False)

    limit = app_config.max_regex_input_length if max_input_length is None else max_input_length
    if len(content) > limit:
        content = content[:limit]

    first_hit: Optional[PatternTestResult] = None
    for pattern in patterns:
        text = _search(pattern, content)

        if match_mode is MatchMode.ANY:
            if text is not None:
                return PatternTestResult(True, pattern, text)
            continue

        if text is None:
            return PatternTestResult(False)
        if first_hit is None:
            first_hit = PatternTestResult(True, pattern, text)

    if match_mode is MatchMode.ALL and first_hit is not None:
        return first_hit
    return PatternTestResult(False)


# Not a pytest test despite the name.
test_patterns.__test__ = False  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# Content extractors
# ---------------------------------------------------------------------------

def extract_emoji(content: str) -> List[str]:
    """Return unicode emoji runs followed by custom emoji as ``name:id``."""
    unicode = UNICODE_EMOJI_RE.findall(content)
    custom = [f"{name}:{emoji_id}" for _, name, emoji_id in CUSTOM_EMOJI_RE.findall(content)]
    return unicode + custom


def extract_urls(content: str) -> List[str]:
    return URL_RE.findall(content)

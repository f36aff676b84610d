"""
Authoring-time validation for automod rules.

Rules are checked when they are saved, never while events are enforced. A
rule that passes ``validate_rule`` has at least one valid pattern, a
non-empty bounded action set and bounded scope lists.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from warden.automod.errors import InvalidPatternError, RuleValidationError
from warden.automod.pattern_matcher import compile_wildcard, validate_regex
from warden.configuration.app_configuration import app_config
from warden.datatypes.automod_datatypes import AutomodAction, AutomodTarget, Pattern, Rule

# Discord's message length limit.
MAX_DM_TEMPLATE_LENGTH = 2000


def build_patterns(
    wildcard_input: Optional[str] = None,
    raw_patterns: Optional[Iterable[Mapping[str, str]]] = None,
) -> List[Pattern]:
    """Merge wildcard and raw regex input into one pattern list.

    Wildcard patterns come first, in input order, followed by the raw
    patterns.

    Args:
        wildcard_input: Comma-separated wildcard tokens, may be empty.
        raw_patterns: Mappings with ``regex`` and optional ``flags``/``label``.

    Raises:
        InvalidPatternError: If any wildcard token or raw regex is rejected.
    """
    patterns: List[Pattern] = []

    if wildcard_input and wildcard_input.strip():
        patterns.extend(compile_wildcard(wildcard_input))

    for raw in raw_patterns or ():
        regex = raw.get("regex")
        if not regex:
            raise InvalidPatternError("Each pattern must have a regex field")
        flags = raw.get("flags") or ""
        validation = validate_regex(regex, flags)
        if not validation.valid:
            raise InvalidPatternError(f'Invalid regex "{regex}": {validation.error}')
        patterns.append(Pattern(regex=regex, flags=flags, label=raw.get("label") or regex))

    return patterns


def validate_rule(rule: Rule) -> Rule:
    """Check a rule against the authoring limits.

    Returns:
        The rule, unchanged, when it is valid.

    Raises:
        RuleValidationError: Listing every violated constraint.
    """
    errors: List[str] = []

    if not rule.name or not rule.name.strip():
        errors.append("name is required")
    elif len(rule.name) > app_config.max_rule_name_length:
        errors.append(f"name must be {app_config.max_rule_name_length} characters or less")

    if not rule.patterns:
        errors.append("at least one pattern is required")
    elif len(rule.patterns) > app_config.max_patterns_per_rule:
        errors.append(f"patterns cannot exceed {app_config.max_patterns_per_rule} entries")
    for pattern in rule.patterns:
        validation = validate_regex(pattern.regex, pattern.flags)
        if not validation.valid:
            errors.append(f'pattern "{pattern.regex}": {validation.error}')

    if not rule.actions:
        errors.append("actions cannot be empty")
    elif len(rule.actions) > app_config.max_actions_per_rule:
        errors.append(f"actions cannot exceed {app_config.max_actions_per_rule} entries")

    if not rule.targets:
        errors.append("at least one target is required")
    elif (
        AutomodAction.REMOVE_REACTION in rule.actions
        and AutomodTarget.REACTION_EMOJI not in rule.targets
    ):
        errors.append("remove_reaction requires the reaction_emoji target")

    if rule.warn_points < 0:
        errors.append("warn_points cannot be negative")
    if rule.timeout_duration_ms is not None and rule.timeout_duration_ms <= 0:
        errors.append("timeout_duration_ms must be positive")

    limit = app_config.max_id_array_length
    for label, ids in (
        ("channel_include", rule.channel_include),
        ("channel_exclude", rule.channel_exclude),
        ("role_include", rule.role_include),
        ("role_exclude", rule.role_exclude),
    ):
        if len(ids) > limit:
            errors.append(f"{label} cannot exceed {limit} entries")

    if rule.dm_template is not None and len(rule.dm_template) > MAX_DM_TEMPLATE_LENGTH:
        errors.append(f"dm_template must be {MAX_DM_TEMPLATE_LENGTH} characters or less")

    if errors:
        raise RuleValidationError("; ".join(errors))
    return rule

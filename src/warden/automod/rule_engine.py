"""
Rule evaluation for automod.

The engine receives rules that are already scoped to the event, orders them
deterministically and returns the first rule that matches. Only one
:class:`Match` is ever produced per event; rules do not stack.

Evaluation order: ``priority`` descending, then ``created_at`` ascending,
then ``id`` ascending.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional

from warden.automod.pattern_matcher import extract_emoji, extract_urls, test_patterns
from warden.datatypes.automod_datatypes import (
    MESSAGE_TARGETS,
    AutomodTarget,
    Match,
    Rule,
)
from warden.datatypes.event_datatypes import MessageEvent, ReactionEvent
from warden.util.logger import get_logger

logger = get_logger("rule_engine")

# Maps a target to a function producing the text to test, or None if the
# event has nothing for that target.
ContentExtractor = Callable[[], Optional[str]]

# Message targets whose matched_content is the matched text rather than the
# whole examined value.
_PARTIAL_CONTENT_TARGETS = MESSAGE_TARGETS


def order_rules(rules: Iterable[Rule]) -> List[Rule]:
    """Sort rules into evaluation order."""
    return sorted(rules, key=Rule.sort_key)


class RuleEngine:
    """Evaluates events against candidate rules, first match wins."""

    def evaluate(self, rules: Iterable[Rule], extractors: Dict[AutomodTarget, ContentExtractor]) -> Optional[Match]:
        """
        Evaluate pre-scoped rules against the contents an event offers.

        Args:
            rules: Candidate rules, already scoped by the caller.
            extractors: Content extractor per target the event supports.

        Returns:
            The Match for the first rule (in evaluation order) with any
            matching target, or None.
        """
        contents: Dict[AutomodTarget, Optional[str]] = {}

        for rule in order_rules(rules):
            if not rule.enabled:
                continue

            for target in sorted(rule.targets, key=lambda t: t.value):
                extractor = extractors.get(target)
                if extractor is None:
                    continue

                if target not in contents:
                    contents[target] = extractor()
                content = contents[target]
                if not content:
                    continue

                result = test_patterns(rule.patterns, content, rule.match_mode)
                if result.matched and result.matched_pattern is not None:
                    matched_content = result.matched_text if target in _PARTIAL_CONTENT_TARGETS else content
                    logger.debug(
                        "[RULE ENGINE] Rule %s (%s) matched on %s",
                        rule.id, rule.name, target.value,
                    )
                    return Match(
                        rule=rule,
                        matched_content=matched_content or "",
                        matched_pattern=result.matched_pattern,
                    )

        return None

    # ------------------------------------------------------------------
    # Event entry points
    # ------------------------------------------------------------------

    def evaluate_message(self, event: MessageEvent, rules: Iterable[Rule]) -> Optional[Match]:
        """Evaluate message-applicable targets (content, emoji, links, stickers)."""
        extractors: Dict[AutomodTarget, ContentExtractor] = {
            AutomodTarget.MESSAGE_CONTENT: lambda: event.content or None,
            AutomodTarget.MESSAGE_EMOJI: lambda: " ".join(extract_emoji(event.content)) or None,
            AutomodTarget.LINK: lambda: " ".join(extract_urls(event.content)) or None,
            AutomodTarget.STICKER: lambda: " ".join(event.sticker_names) or None,
        }
        return self.evaluate(rules, extractors)

    def evaluate_reaction(self, event: ReactionEvent, rules: Iterable[Rule]) -> Optional[Match]:
        """Evaluate the reaction emoji against REACTION_EMOJI rules."""
        return self.evaluate(rules, {AutomodTarget.REACTION_EMOJI: lambda: event.emoji or None})

    def evaluate_member(self, value: Optional[str], rules: Iterable[Rule], target: AutomodTarget) -> Optional[Match]:
        """Evaluate a username or nickname against rules targeting it.

        Args:
            value: The username or nickname; None or empty never matches.
            rules: Candidate rules.
            target: ``AutomodTarget.USERNAME`` or ``AutomodTarget.NICKNAME``.
        """
        if target not in (AutomodTarget.USERNAME, AutomodTarget.NICKNAME):
            raise ValueError(f"Unsupported member target: {target}")
        if not value:
            return None
        return self.evaluate(rules, {target: lambda: value})

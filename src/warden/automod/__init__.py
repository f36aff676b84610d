"""
Automod enforcement core.

- **pattern_matcher.py**: Wildcard compilation, regex validation and pattern
  set evaluation.
- **rule_engine.py**: Orders scoped rules and returns the first match.
- **enforcer.py**: Event gates, actions, infraction recording and escalation.
- **infraction_ledger.py** / **escalation.py**: Point accounting and tiers.
- **rule_validation.py** / **presets.py**: Authoring-time checks and built-in rules.
"""

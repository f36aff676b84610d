"""
Warden - rule-based automod for Discord guilds.

Warden inspects messages, reactions, member joins and nickname changes,
matches them against per-guild pattern rules and enforces the first rule that
fires.

Core Components:

- **Pattern matching**: Wildcard and regex patterns with explicit flags,
  evaluated under ANY/ALL match modes
- **Rule engine**: Deterministic priority ordering with channel and role scoping
- **Enforcement**: Delete, timeout, kick, ban and reaction removal, each
  isolated so one failed platform call never blocks the rest
- **Infractions and escalation**: Append-only infraction ledger with point
  decay and threshold tiers that escalate repeat offenders

Usage:
    from warden.main import main
    main()  # Starts the bot
"""

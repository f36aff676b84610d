"""
Per-action results and the per-event enforcement report.

Every platform call made by the enforcer yields an :class:`ActionResult`
instead of raising; the report aggregates them so the top-level handler can
log a partially applied enforcement in one place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from warden.datatypes.automod_datatypes import AutomodAction, Match
from warden.datatypes.infraction_datatypes import Infraction


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Outcome of a single platform call."""

    action: AutomodAction
    ok: bool
    error: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.action.value}:ok" if self.ok else f"{self.action.value}:failed({self.error})"


@dataclass(frozen=True, slots=True)
class EscalationResult:
    triggered: bool
    tier_name: Optional[str] = None
    results: tuple = ()


@dataclass(slots=True)
class EnforcementReport:
    """Everything that happened while enforcing one event.

    Attributes:
        event_kind: ``message``, ``reaction``, ``member_join`` or ``member_update``.
        match: The rule match that triggered enforcement.
        results: Action results in execution order.
        infraction: The recorded infraction, None if the ledger write failed.
        active_points: Active total after the write, None if unknown.
        escalation: Escalation outcome, None if escalation was not checked.
    """

    event_kind: str
    match: Match
    results: List[ActionResult] = field(default_factory=list)
    infraction: Optional[Infraction] = None
    active_points: Optional[int] = None
    escalation: Optional[EscalationResult] = None

    @property
    def failed_actions(self) -> List[ActionResult]:
        return [result for result in self.results if not result.ok]

    def add(self, result: ActionResult) -> ActionResult:
        self.results.append(result)
        return result

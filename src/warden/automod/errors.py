"""Exception types raised inside the automod core.

None of these ever escape an event handler; they exist so each failure
class can be caught and logged where its recovery policy applies.
"""


class AutomodError(Exception):
    """Base class for automod failures."""


class ConfigUnavailableError(AutomodError):
    """Guild configuration or rules could not be loaded. Enforcement fails closed."""


class InvalidPatternError(AutomodError):
    """A wildcard or regex pattern was rejected at authoring time."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


class RuleValidationError(AutomodError):
    """A rule violates an authoring limit or invariant."""


class ActionExecutionError(AutomodError):
    """A platform action (delete, timeout, kick, ...) failed."""


class LedgerWriteError(AutomodError):
    """The ledger could not record an infraction or answer the reads that follow it."""

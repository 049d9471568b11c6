"""
Reconciliation Engine Errors
============================
"""


class ReconciliationError(Exception):
    """Base class for engine failures."""


class StatementParseError(ReconciliationError):
    """Statement content could not be turned into transactions."""


class PersistenceError(ReconciliationError):
    """A command's writes failed; in-memory state was rolled back."""


class InvariantViolationError(ReconciliationError):
    """A command would leave reconciliation state inconsistent."""

    def __init__(self, violations: list[str]):
        self.violations = violations
        super().__init__("; ".join(violations))

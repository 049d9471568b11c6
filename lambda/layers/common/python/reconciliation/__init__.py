"""
Reconciliation Engine
=====================

Statement import, automatic and manual matching, categorization rules and
consistency cascades, run as commands through FinanceStore.
"""

from .errors import (
    ReconciliationError,
    StatementParseError,
    PersistenceError,
    InvariantViolationError,
)
from .state import FinanceState, find_invariant_violations
from .commands import Command
from .statement_parser import parse_statement, ParsedStatement, TransactionDraft
from .matcher import reconcile, find_matches, MATCH_TOLERANCE
from .payables import rank_payables
from .rules import apply_rules, categorize_by_rules
from .reports import reconciliation_summary, build_reconciliation_report, report_to_csv
from .store import FinanceStore

__all__ = [
    "ReconciliationError",
    "StatementParseError",
    "PersistenceError",
    "InvariantViolationError",
    "FinanceState",
    "find_invariant_violations",
    "Command",
    "parse_statement",
    "ParsedStatement",
    "TransactionDraft",
    "reconcile",
    "find_matches",
    "MATCH_TOLERANCE",
    "rank_payables",
    "apply_rules",
    "categorize_by_rules",
    "reconciliation_summary",
    "build_reconciliation_report",
    "report_to_csv",
    "FinanceStore",
]

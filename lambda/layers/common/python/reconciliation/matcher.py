"""
Automatic Reconciliation Matcher
================================

Pairs unreconciled expenses with unreconciled bank debits by amount.

Single pass, greedy, first fit: each expense takes the first still-unclaimed
debit (in list order) whose absolute amount is within MATCH_TOLERANCE of the
expense total. A closer debit later in the list is not preferred.
"""

from decimal import Decimal
from typing import Optional

from aws_lambda_powertools import Logger

from models import BankTransaction, Expense, MatchResult
from utils.document_store import WriteBatch

from .commands import Command, save_expenses, save_transactions
from .state import FinanceState

logger = Logger()

MATCH_TOLERANCE = Decimal("0.01")


def is_candidate_expense(expense: Expense) -> bool:
    return not expense.is_reconciled and not expense.is_deferred


def is_candidate_transaction(txn: BankTransaction) -> bool:
    return not txn.is_reconciled and txn.amount < 0


def amounts_match(expense: Expense, txn: BankTransaction) -> bool:
    return abs(expense.total - txn.absolute_amount) < MATCH_TOLERANCE


def find_matches(
    expenses: list[Expense],
    transactions: list[BankTransaction],
) -> list[tuple[Expense, BankTransaction]]:
    """Return (expense, transaction) pairs without changing either list."""
    candidate_expenses = [e for e in expenses if is_candidate_expense(e)]
    candidate_txns = [t for t in transactions if is_candidate_transaction(t)]
    if not candidate_expenses or not candidate_txns:
        return []

    claimed: set[str] = set()
    pairs = []
    for expense in candidate_expenses:
        for txn in candidate_txns:
            if txn.id in claimed:
                continue
            if amounts_match(expense, txn):
                claimed.add(txn.id)
                pairs.append((expense, txn))
                break
    return pairs


def reconcile(
    expenses: Optional[list[Expense]] = None,
    transactions: Optional[list[BankTransaction]] = None,
) -> MatchResult:
    """
    Match and mark the given records in place.

    Returns the pairs made; zero matches is a normal outcome.
    """
    pairs = find_matches(expenses or [], transactions or [])
    for expense, txn in pairs:
        expense.mark_reconciled([txn.id])
        txn.is_reconciled = True
    return MatchResult(pairs=[(expense.id, txn.id) for expense, txn in pairs])


class AutoReconcileCommand(Command):
    """Run the matcher over the full state and persist only changed records."""

    name = "auto_reconcile"

    def apply(self, state: FinanceState, writes: WriteBatch) -> MatchResult:
        result = reconcile(state.expenses, state.transactions)
        if not result.pairs:
            logger.info("No automatic matches found")
            return result

        matched_expense_ids = {expense_id for expense_id, _ in result.pairs}
        matched_txn_ids = {txn_id for _, txn_id in result.pairs}
        save_expenses(writes, [e for e in state.expenses if e.id in matched_expense_ids])
        save_transactions(writes, [t for t in state.transactions if t.id in matched_txn_ids])

        logger.info(f"Automatically reconciled {result.count} transaction(s)")
        return result

"""
Command Objects
===============

Every user-facing mutation is a Command: `apply` changes the in-memory
state and records the matching writes, `revert` puts the state back when
the command or its writes fail. FinanceStore runs them.
"""

from typing import Any

from utils.document_store import (
    WriteBatch,
    EXPENSES,
    BANK_TRANSACTIONS,
)

from models import BankTransaction, Expense
from .state import FinanceState


class Command:
    """Base class for state mutations."""

    name = "command"

    def apply(self, state: FinanceState, writes: WriteBatch) -> Any:
        raise NotImplementedError

    def revert(self, state: FinanceState, snapshot: FinanceState) -> None:
        state.restore(snapshot)


def save_expenses(writes: WriteBatch, expenses: list[Expense]) -> None:
    writes.save(EXPENSES, [expense.to_dict() for expense in expenses])


def save_transactions(writes: WriteBatch, transactions: list[BankTransaction]) -> None:
    writes.save(BANK_TRANSACTIONS, [txn.to_dict() for txn in transactions])

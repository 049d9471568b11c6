"""
Finance State
=============

In-memory view of the expenses, bank transactions, statements and rules
of one account. Only commands executed by FinanceStore mutate it.
"""

import copy
from dataclasses import dataclass, field
from typing import Optional

from aws_lambda_powertools import Logger

from models import BankStatement, BankTransaction, CategorizationRule, Expense
from utils.document_store import (
    DocumentStore,
    EXPENSES,
    BANK_TRANSACTIONS,
    BANK_STATEMENTS,
    CATEGORIZATION_RULES,
)

logger = Logger()


@dataclass
class FinanceState:
    expenses: list[Expense] = field(default_factory=list)
    transactions: list[BankTransaction] = field(default_factory=list)
    statements: list[BankStatement] = field(default_factory=list)
    rules: list[CategorizationRule] = field(default_factory=list)

    @classmethod
    def load(cls, store: DocumentStore) -> "FinanceState":
        """Read every collection from the store."""
        state = cls(
            expenses=[Expense.from_dict(r) for r in store.get_all(EXPENSES)],
            transactions=[BankTransaction.from_dict(r) for r in store.get_all(BANK_TRANSACTIONS)],
            statements=[BankStatement.from_dict(r) for r in store.get_all(BANK_STATEMENTS)],
            rules=sorted(
                (CategorizationRule.from_dict(r) for r in store.get_all(CATEGORIZATION_RULES)),
                key=lambda rule: rule.position,
            ),
        )
        violations = find_invariant_violations(state)
        if violations:
            logger.warning(f"Loaded state has {len(violations)} reconciliation inconsistencies")
        return state

    def copy(self) -> "FinanceState":
        return copy.deepcopy(self)

    def restore(self, snapshot: "FinanceState") -> None:
        """Reset every collection to the snapshot's contents."""
        restored = snapshot.copy()
        self.expenses = restored.expenses
        self.transactions = restored.transactions
        self.statements = restored.statements
        self.rules = restored.rules

    def find_expense(self, expense_id: str) -> Optional[Expense]:
        return next((e for e in self.expenses if e.id == expense_id), None)

    def find_transaction(self, transaction_id: str) -> Optional[BankTransaction]:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def find_statement(self, statement_id: str) -> Optional[BankStatement]:
        return next((s for s in self.statements if s.id == statement_id), None)

    def upsert_expense(self, expense: Expense) -> None:
        for index, existing in enumerate(self.expenses):
            if existing.id == expense.id:
                self.expenses[index] = expense
                return
        self.expenses.append(expense)


def find_invariant_violations(state: FinanceState) -> list[str]:
    """
    List expenses whose reconciliation state is inconsistent.

    A reconciled expense must reference at least one transaction, and every
    referenced transaction must still exist.
    """
    known_ids = {t.id for t in state.transactions}
    violations = []
    for expense in state.expenses:
        if not expense.is_reconciled:
            continue
        if not expense.bank_transaction_ids:
            violations.append(f"Expense {expense.id} is reconciled without linked transactions")
            continue
        missing = [tid for tid in expense.bank_transaction_ids if tid not in known_ids]
        if missing:
            violations.append(f"Expense {expense.id} is reconciled against missing transactions {missing}")
    return violations

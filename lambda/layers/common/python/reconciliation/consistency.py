"""
Consistency Maintainer
======================

Cascades deletes and unlinks so that no reconciled expense points at a
missing transaction and no transaction stays reconciled without a claimant.
"""

from typing import Iterable

from aws_lambda_powertools import Logger

from models import BankStatement, BankTransaction, Expense
from utils.document_store import (
    WriteBatch,
    EXPENSES,
    BANK_TRANSACTIONS,
    BANK_STATEMENTS,
)

from .commands import Command, save_expenses, save_transactions
from .state import FinanceState

logger = Logger()


def claimed_transaction_ids(expenses: Iterable[Expense]) -> set[str]:
    """Transaction ids referenced by reconciled expenses."""
    claimed = set()
    for expense in expenses:
        if expense.is_reconciled:
            claimed.update(expense.bank_transaction_ids)
    return claimed


def release_transactions(state: FinanceState, transaction_ids: Iterable[str]) -> list[BankTransaction]:
    """
    Unreconcile transactions that no remaining reconciled expense claims.

    A payable settled with a processing fee shares its transaction with the
    fee expense, so unlinking one of them leaves the transaction reconciled.
    """
    ids = set(transaction_ids)
    if not ids:
        return []
    still_claimed = claimed_transaction_ids(state.expenses)
    released = []
    for txn in state.transactions:
        if txn.id in ids and txn.is_reconciled and txn.id not in still_claimed:
            txn.is_reconciled = False
            released.append(txn)
    return released


class DeleteExpenseCommand(Command):
    name = "delete_expense"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id

    def apply(self, state: FinanceState, writes: WriteBatch) -> bool:
        expense = state.find_expense(self.expense_id)
        if expense is None:
            return False

        linked_ids = list(expense.bank_transaction_ids)
        state.expenses = [e for e in state.expenses if e.id != expense.id]
        released = release_transactions(state, linked_ids)

        if released:
            save_transactions(writes, released)
        writes.delete(EXPENSES, [expense.id])
        logger.info(f"Deleted expense {expense.id}, released {len(released)} transaction(s)")
        return True


class UnlinkExpenseCommand(Command):
    name = "unlink_expense"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id

    def apply(self, state: FinanceState, writes: WriteBatch) -> bool:
        expense = state.find_expense(self.expense_id)
        if expense is None:
            return False

        linked_ids = list(expense.bank_transaction_ids)
        expense.mark_unreconciled()
        released = release_transactions(state, linked_ids)

        save_expenses(writes, [expense])
        if released:
            save_transactions(writes, released)
        logger.info(f"Unlinked expense {expense.id} from {len(linked_ids)} transaction(s)")
        return True


class DeleteStatementCommand(Command):
    """
    Remove a statement and every transaction it produced.

    Expenses linked to any removed transaction are unreconciled (not
    deleted), and their surviving transactions from other statements are
    released as well.
    """

    name = "delete_statement"

    def __init__(self, statement_id: str):
        self.statement_id = statement_id

    def apply(self, state: FinanceState, writes: WriteBatch) -> bool:
        statement = state.find_statement(self.statement_id)
        if statement is None:
            return False

        removed_ids = {t.id for t in state.transactions if t.statement_id == statement.id}
        state.statements = [s for s in state.statements if s.id != statement.id]
        state.transactions = [t for t in state.transactions if t.id not in removed_ids]

        affected = [
            e for e in state.expenses
            if removed_ids.intersection(e.bank_transaction_ids)
        ]
        surviving_ids = set()
        for expense in affected:
            surviving_ids.update(tid for tid in expense.bank_transaction_ids if tid not in removed_ids)
            expense.mark_unreconciled()
        released = release_transactions(state, surviving_ids)

        if affected:
            save_expenses(writes, affected)
        if released:
            save_transactions(writes, released)
        writes.delete(BANK_TRANSACTIONS, sorted(removed_ids))
        writes.delete(BANK_STATEMENTS, [statement.id])

        logger.info(
            f"Deleted statement {statement.file_name}: {len(removed_ids)} transactions removed, "
            f"{len(affected)} expense(s) unreconciled"
        )
        return True


class ClearBankDataCommand(Command):
    """Remove all statements and transactions and unreconcile every expense."""

    name = "clear_bank_data"

    def apply(self, state: FinanceState, writes: WriteBatch) -> int:
        transaction_ids = [t.id for t in state.transactions]
        statement_ids = [s.id for s in state.statements]
        unreconciled = [e for e in state.expenses if e.is_reconciled or e.bank_transaction_ids]
        for expense in unreconciled:
            expense.mark_unreconciled()

        state.transactions = []
        state.statements = []

        if unreconciled:
            save_expenses(writes, unreconciled)
        if transaction_ids:
            writes.delete(BANK_TRANSACTIONS, transaction_ids)
        if statement_ids:
            writes.delete(BANK_STATEMENTS, statement_ids)

        logger.info(
            f"Cleared {len(statement_ids)} statements and {len(transaction_ids)} transactions; "
            f"{len(unreconciled)} expense(s) unreconciled"
        )
        return len(transaction_ids)


class RestoreCommand(Command):
    """
    Replace expenses, bank transactions and statements with a backup.

    Records missing from the backup are deleted from the store. Categorization
    rules are not part of a backup and are left as they are.
    """

    name = "restore"

    def __init__(self, backup: dict):
        if not isinstance(backup, dict):
            raise ValueError("Backup payload must be an object")
        self.expenses = [Expense.from_dict(r) for r in backup.get(EXPENSES) or []]
        self.transactions = [BankTransaction.from_dict(r) for r in backup.get(BANK_TRANSACTIONS) or []]
        self.statements = [BankStatement.from_dict(r) for r in backup.get(BANK_STATEMENTS) or []]

    def apply(self, state: FinanceState, writes: WriteBatch) -> dict:
        replacements = [
            (EXPENSES, state.expenses, self.expenses),
            (BANK_TRANSACTIONS, state.transactions, self.transactions),
            (BANK_STATEMENTS, state.statements, self.statements),
        ]
        for collection, current, incoming in replacements:
            incoming_ids = {record.id for record in incoming}
            stale = [record.id for record in current if record.id not in incoming_ids]
            if incoming:
                writes.save(collection, [record.to_dict() for record in incoming])
            if stale:
                writes.delete(collection, stale)

        state.expenses = list(self.expenses)
        state.transactions = list(self.transactions)
        state.statements = list(self.statements)

        counts = {
            "expenses": len(self.expenses),
            "bank_transactions": len(self.transactions),
            "bank_statements": len(self.statements),
        }
        logger.info(f"Restored backup: {counts}")
        return counts

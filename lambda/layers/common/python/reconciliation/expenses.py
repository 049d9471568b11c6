"""
Expense Saving
==============

Upserts expenses by id. Receipts are deduplicated by content hash: a new
expense whose receipt was already captured is skipped. Transactions an
edited expense stops claiming are unreconciled.
"""

from datetime import datetime, timezone

from aws_lambda_powertools import Logger

from models import Expense, SaveExpensesResult
from utils.document_store import WriteBatch
from utils.identifiers import generate_id

from .commands import Command, save_expenses, save_transactions
from .consistency import release_transactions
from .state import FinanceState

logger = Logger()


class SaveExpensesCommand(Command):
    name = "save_expenses"

    def __init__(self, expenses: list[Expense]):
        self.expenses = list(expenses)

    def apply(self, state: FinanceState, writes: WriteBatch) -> SaveExpensesResult:
        result = SaveExpensesResult()
        known_hashes = {e.receipt_hash: e.id for e in state.expenses if e.receipt_hash}
        saved = []
        dropped_ids = []

        for expense in self.expenses:
            if not expense.id:
                expense.id = generate_id()
            previous = state.find_expense(expense.id)
            is_new = previous is None

            owner = known_hashes.get(expense.receipt_hash) if expense.receipt_hash else None
            if is_new and owner is not None and owner != expense.id:
                logger.info(f"Skipping expense {expense.id}: receipt already captured as {owner}")
                result.skipped_duplicates += 1
                continue

            if expense.created_at is None:
                expense.created_at = datetime.now(timezone.utc)
            if expense.receipt_hash:
                known_hashes[expense.receipt_hash] = expense.id

            if previous is not None and previous.is_reconciled:
                kept = set(expense.bank_transaction_ids) if expense.is_reconciled else set()
                dropped_ids.extend(i for i in previous.bank_transaction_ids if i not in kept)
            state.upsert_expense(expense)
            saved.append(expense)
            result.saved_ids.append(expense.id)

        # Transactions the saved expenses no longer claim
        released = release_transactions(state, dropped_ids)
        if saved:
            save_expenses(writes, saved)
        if released:
            save_transactions(writes, released)
        logger.info(f"Saved {len(saved)} expense(s), skipped {result.skipped_duplicates} duplicate receipt(s)")
        return result

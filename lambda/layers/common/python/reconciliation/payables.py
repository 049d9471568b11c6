"""
Manual Payable Matching
=======================

User-directed reconciliation for deferred expenses (invoices paid later)
and manual linking of an expense to hand-picked bank debits.

When a payable is settled by a smaller deposit and a processing-fee rate is
configured, the difference is booked as its own "Bank & Processing Fee"
expense against the same transaction.
"""

from datetime import datetime, timezone
from decimal import Decimal

from aws_lambda_powertools import Logger

from models import (
    BankTransaction,
    Expense,
    ExpenseCategory,
    ExpenseLineItem,
    PayableMatchResult,
)
from utils.document_store import WriteBatch
from utils.identifiers import generate_id

from .commands import Command, save_expenses, save_transactions
from .consistency import release_transactions
from .state import FinanceState

logger = Logger()

FEE_THRESHOLD = Decimal("0.01")
FEE_DESCRIPTION = "Processing Fee"


def rank_payables(transaction: BankTransaction, expenses: list[Expense]) -> list[Expense]:
    """Open payables ordered by how close their total is to the transaction amount."""
    target = transaction.absolute_amount
    payables = [e for e in expenses if e.is_payable]
    return sorted(payables, key=lambda e: abs(e.total - target))


def build_fee_expense(expense: Expense, txn: BankTransaction, fee_amount: Decimal) -> Expense:
    fee_amount = fee_amount.quantize(Decimal("0.01"))
    return Expense(
        id=generate_id(),
        vendor=expense.vendor,
        expense_date=txn.transaction_date,
        total=fee_amount,
        tax=Decimal("0"),
        line_items=[ExpenseLineItem(
            id=generate_id(),
            description=FEE_DESCRIPTION,
            amount=fee_amount,
            category=ExpenseCategory.BANK_PROCESSING_FEE,
        )],
        is_reconciled=True,
        bank_transaction_ids=[txn.id],
        created_at=datetime.now(timezone.utc),
    )


class MatchPayableCommand(Command):
    """
    Settle one expense against one bank transaction.

    Missing expense or transaction is a no-op. A fee expense is created only
    when the fee rate is positive and the invoiced total exceeds the deposit
    by more than a cent; a deposit larger than the invoice creates nothing.
    """

    name = "match_payable"

    def __init__(self, bank_transaction_id: str, expense_id: str, processing_fee_rate: Decimal = Decimal("0")):
        self.bank_transaction_id = bank_transaction_id
        self.expense_id = expense_id
        self.processing_fee_rate = processing_fee_rate

    def apply(self, state: FinanceState, writes: WriteBatch) -> PayableMatchResult:
        txn = state.find_transaction(self.bank_transaction_id)
        expense = state.find_expense(self.expense_id)
        if txn is None or expense is None:
            logger.info(f"Payable match skipped: expense {self.expense_id} or transaction {self.bank_transaction_id} not found")
            return PayableMatchResult()

        fee_amount = expense.total - txn.absolute_amount

        previous_ids = [tid for tid in expense.bank_transaction_ids if tid != txn.id]
        expense.mark_reconciled([txn.id])
        expense.is_deferred = False
        changed = [expense]

        result = PayableMatchResult(
            matched=True,
            expense_id=expense.id,
            bank_transaction_id=txn.id,
            fee_amount=fee_amount,
        )

        if self.processing_fee_rate > 0 and fee_amount > FEE_THRESHOLD:
            fee_expense = build_fee_expense(expense, txn, fee_amount)
            state.expenses.append(fee_expense)
            changed.append(fee_expense)
            result.fee_expense_id = fee_expense.id
            logger.info(f"Recorded processing fee ${fee_expense.total} for {expense.vendor}")

        txn.is_reconciled = True
        released = release_transactions(state, previous_ids)
        save_expenses(writes, changed)
        save_transactions(writes, [txn, *released])

        logger.info(f"Matched payable {expense.id} to transaction {txn.id}")
        return result


class LinkTransactionsCommand(Command):
    """Reconcile an expense against one or more chosen bank transactions."""

    name = "link_transactions"

    def __init__(self, expense_id: str, transaction_ids: list[str]):
        if not transaction_ids:
            raise ValueError("At least one bank transaction is required to link an expense")
        self.expense_id = expense_id
        self.transaction_ids = list(dict.fromkeys(transaction_ids))

    def apply(self, state: FinanceState, writes: WriteBatch) -> bool:
        expense = state.find_expense(self.expense_id)
        transactions = [t for t in state.transactions if t.id in self.transaction_ids]
        if expense is None or not transactions:
            logger.info(f"Link skipped for expense {self.expense_id}: nothing to link")
            return False

        # Keep the caller's ordering of ids
        linked_ids = [tid for tid in self.transaction_ids if state.find_transaction(tid) is not None]
        previous_ids = [tid for tid in expense.bank_transaction_ids if tid not in linked_ids]
        expense.mark_reconciled(linked_ids)
        expense.is_deferred = False
        for txn in transactions:
            txn.is_reconciled = True
        released = release_transactions(state, previous_ids)

        save_expenses(writes, [expense])
        save_transactions(writes, transactions + released)
        logger.info(f"Linked expense {expense.id} to {len(linked_ids)} transaction(s)")
        return True

"""
Reconciliation Reports
======================

Read-only views over the finance state: the reconciliation summary shown
after a run, and the dated reconciliation report exported as CSV.
"""

import csv
import io
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from models import BankTransaction, Expense, ExpenseCategory

from .state import FinanceState

FEE_THRESHOLD = Decimal("0.01")

STATUS_RECONCILED = "Reconciled"
STATUS_UNRECONCILED_RECEIPT = "Unreconciled (Receipt)"
STATUS_PAYABLE = "Payable (Deferred)"
STATUS_UNRECONCILED_DEBIT = "Unreconciled (Bank Debit)"

REPORT_HEADERS = ["Date", "Description/Vendor", "Category", "Amount", "Status", "Reconciliation Note"]


@dataclass
class ReportRow:
    row_date: Optional[date]
    description: str
    category: str
    amount: Decimal
    status: str
    note: str

    def to_dict(self) -> dict:
        return {
            "Date": self.row_date.isoformat() if self.row_date else "",
            "Description/Vendor": self.description,
            "Category": self.category,
            "Amount": f"{self.amount:.2f}",
            "Status": self.status,
            "Reconciliation Note": self.note,
        }


def reconciliation_summary(state: FinanceState) -> dict:
    """Open items and totals for the reconciliation screen."""
    unmatched_expenses = [e for e in state.expenses if not e.is_reconciled and not e.is_deferred]
    unmatched_debits = [t for t in state.transactions if t.is_debit and not t.is_reconciled]
    payables = [e for e in state.expenses if e.is_payable]

    counts_by_statement: dict[str, int] = {}
    for txn in state.transactions:
        if txn.statement_id:
            counts_by_statement[txn.statement_id] = counts_by_statement.get(txn.statement_id, 0) + 1

    return {
        "expenses": len(state.expenses),
        "reconciled_expenses": sum(1 for e in state.expenses if e.is_reconciled),
        "transactions": len(state.transactions),
        "reconciled_transactions": sum(1 for t in state.transactions if t.is_reconciled),
        "unmatched_expenses": [_expense_summary(e) for e in unmatched_expenses],
        "unmatched_debits": [_transaction_summary(t) for t in unmatched_debits],
        "payables": [_expense_summary(e) for e in payables],
        "unmatched_debit_total": float(sum((t.absolute_amount for t in unmatched_debits), Decimal("0"))),
        "statements": [
            {
                "id": s.id,
                "file_name": s.file_name,
                "statement_period": s.statement_period,
                "transaction_count": counts_by_statement.get(s.id, 0),
            }
            for s in state.statements
        ],
    }


def _expense_summary(expense: Expense) -> dict:
    return {
        "id": expense.id,
        "vendor": expense.vendor,
        "date": expense.expense_date.isoformat() if expense.expense_date else None,
        "total": float(expense.total),
    }


def _transaction_summary(txn: BankTransaction) -> dict:
    return {
        "id": txn.id,
        "date": txn.transaction_date.isoformat(),
        "description": txn.description,
        "amount": float(txn.amount),
        "category": txn.category.value if txn.category else None,
    }


def _in_range(value: Optional[date], start: date, end: date) -> bool:
    return value is not None and start <= value <= end


def _line_rows(expense: Expense, status: str, note: str) -> list[ReportRow]:
    rows = []
    for index, item in enumerate(expense.line_items):
        rows.append(ReportRow(
            row_date=expense.expense_date,
            description=expense.vendor if index == 0 else item.description,
            category=item.category.value,
            amount=item.amount,
            status=status,
            note=note,
        ))
    return rows


def _has_fee_expense(state: FinanceState, expense: Expense, txn: BankTransaction) -> bool:
    return any(
        other.id != expense.id
        and txn.id in other.bank_transaction_ids
        and other.primary_category == ExpenseCategory.BANK_PROCESSING_FEE
        for other in state.expenses
    )


def build_reconciliation_report(state: FinanceState, start: date, end: date) -> list[ReportRow]:
    """
    Build report rows for expenses and debits dated within [start, end].

    Sections, in order: reconciled expense lines (plus a fee variance row
    when the expense exceeds its bank debit and no fee expense was booked),
    unreconciled receipts, deferred payables, and categorized bank debits
    with no receipt.
    """
    if start > end:
        raise ValueError(f"Report start {start} is after end {end}")

    rows: list[ReportRow] = []

    for expense in state.expenses:
        if not (expense.is_reconciled and expense.bank_transaction_ids):
            continue
        if not _in_range(expense.expense_date, start, end):
            continue
        txn = next((t for t in state.transactions if t.id in expense.bank_transaction_ids), None)
        txn_date = txn.transaction_date.isoformat() if txn else "unknown date"
        rows.extend(_line_rows(expense, STATUS_RECONCILED, f"Matched to bank transaction from {txn_date}"))

        if txn is None or expense.primary_category == ExpenseCategory.BANK_PROCESSING_FEE:
            continue
        fee = expense.total - txn.absolute_amount
        if fee > FEE_THRESHOLD and not _has_fee_expense(state, expense, txn):
            rows.append(ReportRow(
                row_date=txn.transaction_date,
                description=f"{expense.vendor} - Processing Fee",
                category=ExpenseCategory.BANK_PROCESSING_FEE.value,
                amount=fee,
                status=STATUS_RECONCILED,
                note="Fee from bank transaction",
            ))

    for expense in state.expenses:
        if not expense.is_reconciled and not expense.is_deferred and _in_range(expense.expense_date, start, end):
            rows.extend(_line_rows(expense, STATUS_UNRECONCILED_RECEIPT, "No matching bank transaction found"))

    for expense in state.expenses:
        if expense.is_deferred and _in_range(expense.expense_date, start, end):
            rows.extend(_line_rows(expense, STATUS_PAYABLE, "Marked to be paid later"))

    for txn in state.transactions:
        if txn.is_debit and not txn.is_reconciled and txn.category and _in_range(txn.transaction_date, start, end):
            rows.append(ReportRow(
                row_date=txn.transaction_date,
                description=txn.description,
                category=txn.category.value,
                amount=txn.absolute_amount,
                status=STATUS_UNRECONCILED_DEBIT,
                note="No matching receipt found",
            ))

    return rows


def report_to_csv(rows: list[ReportRow]) -> str:
    """Render rows as CSV with every value quoted; empty input gives headers only."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=REPORT_HEADERS, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow(row.to_dict())
    return buffer.getvalue()

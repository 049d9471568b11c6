"""
Reconciliation Result Data Models
=================================

Outcomes of engine operations, reported back to the caller for user
feedback (notifications, match counts, audit lists).
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional


class ImportErrorCode(str, Enum):
    """Why a statement file was not imported."""
    DUPLICATE = "duplicate"
    UNSUPPORTED_FILE = "unsupported_file"
    NO_TRANSACTIONS = "no_transactions"
    PARSE_ERROR = "parse_error"


@dataclass
class ImportResult:
    """Result of importing one statement file."""

    file_name: str
    success: bool = False
    error: Optional[str] = None
    error_code: Optional[ImportErrorCode] = None

    statement_id: Optional[str] = None
    transaction_count: int = 0
    matches: int = 0

    @property
    def is_duplicate(self) -> bool:
        """Duplicates are skips, not failures."""
        return self.error_code == ImportErrorCode.DUPLICATE

    def to_dict(self) -> dict:
        return {
            "file_name": self.file_name,
            "success": self.success,
            "error": self.error,
            "error_code": self.error_code.value if self.error_code else None,
            "skipped": self.is_duplicate,
            "statement_id": self.statement_id,
            "transaction_count": self.transaction_count,
            "matches": self.matches,
        }


@dataclass
class MatchResult:
    """Pairs produced by one automatic reconciliation pass."""

    pairs: list[tuple[str, str]] = field(default_factory=list)  # (expense_id, transaction_id)

    @property
    def count(self) -> int:
        return len(self.pairs)

    def to_summary(self) -> str:
        """Generate human-readable summary."""
        if not self.pairs:
            return "No automatic matches found."
        return f"Automatically reconciled {self.count} transaction(s)."

    def to_dict(self) -> dict:
        return {
            "matches": self.count,
            "pairs": [
                {"expense_id": expense_id, "bank_transaction_id": txn_id}
                for expense_id, txn_id in self.pairs
            ],
            "message": self.to_summary(),
        }


@dataclass
class PayableMatchResult:
    """Result of manually matching a payable to a bank transaction."""

    matched: bool = False
    expense_id: Optional[str] = None
    bank_transaction_id: Optional[str] = None
    fee_amount: Optional[Decimal] = None
    fee_expense_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "matched": self.matched,
            "expense_id": self.expense_id,
            "bank_transaction_id": self.bank_transaction_id,
            "fee_amount": float(self.fee_amount) if self.fee_amount is not None else None,
            "fee_expense_id": self.fee_expense_id,
        }


@dataclass
class SaveExpensesResult:
    """Result of saving a batch of expenses."""

    saved_ids: list[str] = field(default_factory=list)
    skipped_duplicates: int = 0
    matches: int = 0

    def to_dict(self) -> dict:
        return {
            "saved": len(self.saved_ids),
            "saved_ids": list(self.saved_ids),
            "skipped_duplicates": self.skipped_duplicates,
            "matches": self.matches,
        }

"""
Bank Transaction Data Model
===========================

Represents one row imported from a bank statement.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from .expense import ExpenseCategory
from .fields import parse_date, parse_datetime, to_decimal, money_to_json


@dataclass
class BankTransaction:
    """
    Represents a bank transaction.

    Created only by statement import and deleted only together with its
    statement. Amounts are signed: negative values are debits (money out).
    """

    # Primary identifier
    id: str

    # Core transaction data
    transaction_date: date
    description: str
    amount: Decimal

    # Reconciliation and tagging
    is_reconciled: bool = False
    statement_id: Optional[str] = None
    category: Optional[ExpenseCategory] = None

    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> "BankTransaction":
        """Create BankTransaction from a stored record."""
        category = data.get("category")
        return cls(
            id=data.get("id", ""),
            transaction_date=parse_date(data.get("date")) or date.today(),
            description=data.get("description", ""),
            amount=to_decimal(data.get("amount")),
            is_reconciled=bool(data.get("is_reconciled", False)),
            statement_id=data.get("statement_id"),
            category=ExpenseCategory(category) if category else None,
            created_at=parse_datetime(data.get("created_at")),
        )

    @property
    def is_debit(self) -> bool:
        return self.amount < 0

    @property
    def absolute_amount(self) -> Decimal:
        return abs(self.amount)

    def to_dict(self) -> dict:
        """Convert to dictionary for document store operations."""
        return {
            "id": self.id,
            "date": self.transaction_date.isoformat(),
            "description": self.description,
            "amount": money_to_json(self.amount),
            "is_reconciled": self.is_reconciled,
            "statement_id": self.statement_id,
            "category": self.category.value if self.category else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

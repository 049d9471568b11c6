"""
Expense Data Model
==================

Represents a recorded expense (receipt capture or manual entry) and its
reconciliation state against bank transactions.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .fields import parse_date, parse_datetime, to_decimal, money_to_json


class ExpenseCategory(str, Enum):
    """Spending categories shared by expense line items and bank transactions."""
    ADVERTISING = "Advertising"
    OFFICE_SUPPLIES = "Office Supplies"
    FUEL = "Fuel"
    BUILDING_MATERIALS = "Building Materials"
    MEALS_ENTERTAINMENT = "Meals & Entertainment"
    TOOLS_EQUIPMENT = "Tools & Equipment"
    SOFTWARE = "Software"
    UTILITIES = "Utilities"
    TRAVEL = "Travel"
    BANK_PROCESSING_FEE = "Bank & Processing Fee"
    MILEAGE = "Mileage"
    OTHER = "Other"
    UNCATEGORIZED = "Uncategorized"


@dataclass
class ExpenseLineItem:
    """Single categorized line on an expense."""
    id: str
    description: str
    amount: Decimal
    category: ExpenseCategory = ExpenseCategory.OTHER

    @classmethod
    def from_dict(cls, data: dict) -> "ExpenseLineItem":
        return cls(
            id=data.get("id", ""),
            description=data.get("description", ""),
            amount=to_decimal(data.get("amount")),
            category=ExpenseCategory(data.get("category") or ExpenseCategory.OTHER.value),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "amount": money_to_json(self.amount),
            "category": self.category.value,
        }


@dataclass
class Expense:
    """
    Represents an expense in the reconciliation engine.

    Maps to the expenses collection. An expense is reconciled when it is
    linked to at least one bank transaction; deferred expenses (payables)
    are only ever matched manually.
    """

    # Primary identifier
    id: str

    # Core expense data
    vendor: str = ""
    expense_date: Optional[date] = None
    total: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    line_items: list[ExpenseLineItem] = field(default_factory=list)

    # Reconciliation state
    is_reconciled: bool = False
    bank_transaction_ids: list[str] = field(default_factory=list)
    is_deferred: bool = False

    # Receipt
    receipt_hash: Optional[str] = None  # SHA-256 of the receipt file
    receipt_url: Optional[str] = None

    # Timestamps
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Expense":
        """Create Expense from a stored record."""
        return cls(
            id=data.get("id", ""),
            vendor=data.get("vendor") or "",
            expense_date=parse_date(data.get("date")),
            total=to_decimal(data.get("total")),
            tax=to_decimal(data.get("tax")),
            line_items=[ExpenseLineItem.from_dict(item) for item in data.get("line_items") or []],
            is_reconciled=bool(data.get("is_reconciled", False)),
            bank_transaction_ids=list(data.get("bank_transaction_ids") or []),
            is_deferred=bool(data.get("is_deferred", False)),
            receipt_hash=data.get("receipt_hash"),
            receipt_url=data.get("receipt_url"),
            created_at=parse_datetime(data.get("created_at")),
        )

    @property
    def is_payable(self) -> bool:
        """Deferred and still waiting for its payment to show up."""
        return self.is_deferred and not self.is_reconciled

    @property
    def primary_category(self) -> ExpenseCategory:
        """Category of the first line item, used for tax roll-ups."""
        if self.line_items:
            return self.line_items[0].category
        return ExpenseCategory.UNCATEGORIZED

    def mark_reconciled(self, transaction_ids: list[str]) -> None:
        self.is_reconciled = True
        self.bank_transaction_ids = list(transaction_ids)

    def mark_unreconciled(self) -> None:
        self.is_reconciled = False
        self.bank_transaction_ids = []

    def to_dict(self) -> dict:
        """Convert to dictionary for document store operations."""
        return {
            "id": self.id,
            "vendor": self.vendor,
            "date": self.expense_date.isoformat() if self.expense_date else None,
            "total": money_to_json(self.total),
            "tax": money_to_json(self.tax),
            "line_items": [item.to_dict() for item in self.line_items],
            "is_reconciled": self.is_reconciled,
            "bank_transaction_ids": list(self.bank_transaction_ids),
            "is_deferred": self.is_deferred,
            "receipt_hash": self.receipt_hash,
            "receipt_url": self.receipt_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

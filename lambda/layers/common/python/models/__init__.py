"""
Reconciliation Engine - Data Models
===================================

Typed data models for statement import and expense reconciliation.
"""

from .expense import Expense, ExpenseLineItem, ExpenseCategory
from .bank_transaction import BankTransaction
from .bank_statement import BankStatement
from .categorization_rule import CategorizationRule
from .results import (
    ImportResult,
    ImportErrorCode,
    MatchResult,
    PayableMatchResult,
    SaveExpensesResult,
)

__all__ = [
    "Expense",
    "ExpenseLineItem",
    "ExpenseCategory",
    "BankTransaction",
    "BankStatement",
    "CategorizationRule",
    "ImportResult",
    "ImportErrorCode",
    "MatchResult",
    "PayableMatchResult",
    "SaveExpensesResult",
]

"""
Shared fixtures for the reconciliation engine tests.

The layer directory (lambda/layers/common/python) is put on sys.path by the
pytest configuration in pyproject.toml.
"""

import os

os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "FinanceReconciliation")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "reconciliation-tests")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest

from models import (
    BankStatement,
    BankTransaction,
    CategorizationRule,
    Expense,
    ExpenseCategory,
    ExpenseLineItem,
)
from reconciliation import FinanceStore
from utils.config import EngineSettings
from utils.document_store import (
    MemoryDocumentStore,
    EXPENSES,
    BANK_TRANSACTIONS,
    BANK_STATEMENTS,
    CATEGORIZATION_RULES,
)


@dataclass
class FakeLambdaContext:
    function_name: str = "test-function"
    memory_limit_in_mb: int = 128
    invoked_function_arn: str = "arn:aws:lambda:us-east-1:123456789012:function:test-function"
    aws_request_id: str = "52fdfc07-2182-154f-163f-5f0f9a621d72"

    def get_remaining_time_in_millis(self) -> int:
        return 30000


@pytest.fixture
def lambda_context():
    return FakeLambdaContext()


def make_expense(
    expense_id: str,
    total: str,
    vendor: str = "Home Depot",
    expense_date: date = date(2025, 10, 3),
    category: ExpenseCategory = ExpenseCategory.BUILDING_MATERIALS,
    **kwargs,
) -> Expense:
    return Expense(
        id=expense_id,
        vendor=vendor,
        expense_date=expense_date,
        total=Decimal(total),
        line_items=[ExpenseLineItem(id=f"{expense_id}-1", description=vendor, amount=Decimal(total), category=category)],
        **kwargs,
    )


def make_transaction(
    txn_id: str,
    amount: str,
    description: str = "HOME DEPOT #123",
    transaction_date: date = date(2025, 10, 4),
    statement_id: str = "S1",
    **kwargs,
) -> BankTransaction:
    return BankTransaction(
        id=txn_id,
        transaction_date=transaction_date,
        description=description,
        amount=Decimal(amount),
        statement_id=statement_id,
        **kwargs,
    )


def make_statement(statement_id: str = "S1", file_hash: str = "abc123", transaction_count: int = 0) -> BankStatement:
    return BankStatement(
        id=statement_id,
        file_name=f"{statement_id.lower()}.csv",
        file_hash=file_hash,
        transaction_count=transaction_count,
        statement_period="Oct 2025",
    )


def seed_store(
    expenses=(),
    transactions=(),
    statements=(),
    rules=(),
) -> MemoryDocumentStore:
    return MemoryDocumentStore({
        EXPENSES: [e.to_dict() for e in expenses],
        BANK_TRANSACTIONS: [t.to_dict() for t in transactions],
        BANK_STATEMENTS: [s.to_dict() for s in statements],
        CATEGORIZATION_RULES: [r.to_dict() for r in rules],
    })


def make_rule(rule_id: str, keyword: str, category: ExpenseCategory, position: int = 0) -> CategorizationRule:
    return CategorizationRule(id=rule_id, keyword=keyword, category=category, position=position)


@pytest.fixture
def memory_store():
    return MemoryDocumentStore()


@pytest.fixture
def finance_store(memory_store):
    return FinanceStore.load(memory_store, settings=EngineSettings())


STATEMENT_CSV = (
    "Date,Description,Debit,Credit\n"
    "10/03/2025,HOME DEPOT #123,102.52,\n"
    "10/05/2025,SHELL OIL 5521,45.10,\n"
    "10/09/2025,CLIENT PAYMENT,,1500.00\n"
)


@pytest.fixture
def statement_csv() -> bytes:
    return STATEMENT_CSV.encode("utf-8")

"""
Finance Store
=============

Owns the finance state of one account and runs every mutation as a
Command: snapshot, apply, verify invariants, persist, and roll back to
the snapshot when anything fails.

Read access returns copies; callers never mutate the live state.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union

from aws_lambda_powertools import Logger

from models import (
    BankStatement,
    BankTransaction,
    CategorizationRule,
    Expense,
    ExpenseCategory,
    ImportResult,
    MatchResult,
    PayableMatchResult,
    SaveExpensesResult,
)
from utils.config import EngineSettings
from utils.document_store import DocumentStore, WriteBatch

from .commands import Command
from .consistency import (
    ClearBankDataCommand,
    DeleteExpenseCommand,
    DeleteStatementCommand,
    RestoreCommand,
    UnlinkExpenseCommand,
)
from .errors import InvariantViolationError, PersistenceError, ReconciliationError
from .expenses import SaveExpensesCommand
from .importer import ImportStatementCommand
from .matcher import AutoReconcileCommand
from .payables import LinkTransactionsCommand, MatchPayableCommand, rank_payables
from .reports import ReportRow, build_reconciliation_report, reconciliation_summary
from .rules import ApplyRulesCommand, SaveRulesCommand, SetCategoryCommand
from .state import FinanceState, find_invariant_violations

logger = Logger()


class FinanceStore:
    """
    Command controller over a DocumentStore.

    Usage:
        store = FinanceStore.load(MemoryDocumentStore())
        result = store.import_statement("oct.csv", content)
    """

    def __init__(
        self,
        adapter: DocumentStore,
        settings: Optional[EngineSettings] = None,
        state: Optional[FinanceState] = None,
    ):
        self.adapter = adapter
        self.settings = settings or EngineSettings()
        self._state = state or FinanceState()

    @classmethod
    def load(cls, adapter: DocumentStore, settings: Optional[EngineSettings] = None) -> "FinanceStore":
        """Create a store with state read from the adapter."""
        return cls(adapter, settings=settings, state=FinanceState.load(adapter))

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> FinanceState:
        return self._state.copy()

    @property
    def expenses(self) -> list[Expense]:
        return self.state.expenses

    @property
    def transactions(self) -> list[BankTransaction]:
        return self.state.transactions

    @property
    def statements(self) -> list[BankStatement]:
        return self.state.statements

    @property
    def rules(self) -> list[CategorizationRule]:
        return self.state.rules

    # ------------------------------------------------------------------
    # Command execution
    # ------------------------------------------------------------------

    def execute(self, command: Command) -> Any:
        """
        Run one command against the live state.

        Raises:
            InvariantViolationError: the command introduced an inconsistency
            PersistenceError: the adapter rejected the writes
        """
        snapshot = self._state.copy()
        existing = set(find_invariant_violations(snapshot))
        writes = WriteBatch()

        try:
            result = command.apply(self._state, writes)
        except Exception:
            command.revert(self._state, snapshot)
            raise

        introduced = [v for v in find_invariant_violations(self._state) if v not in existing]
        if introduced:
            command.revert(self._state, snapshot)
            logger.error(f"{command.name} rejected: {introduced}")
            raise InvariantViolationError(introduced)

        if writes.is_empty:
            return result

        try:
            self.adapter.apply_writes(writes)
        except Exception as e:
            command.revert(self._state, snapshot)
            logger.exception(f"Failed to persist {command.name}, state rolled back")
            raise PersistenceError(f"Failed to persist {command.name}: {e}") from e

        logger.debug(f"Executed {command.name}", extra=writes.summary())
        return result

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def import_statement(
        self,
        file_name: str,
        content: bytes,
        content_type: Optional[str] = None,
        auto_reconcile: bool = True,
    ) -> ImportResult:
        """
        Import one file, then run the matcher when it succeeded.

        The import is committed before matching starts, so a matcher failure
        is logged and leaves the file reported as imported with no matches.
        """
        result = self.execute(ImportStatementCommand(file_name, content, content_type))
        if result.success and auto_reconcile:
            try:
                result.matches = self.reconcile().count
            except ReconciliationError:
                logger.exception(f"Auto reconcile after importing {file_name} failed")
                result.matches = 0
        return result

    def import_statements(self, files: list[tuple[str, bytes, Optional[str]]]) -> list[ImportResult]:
        """
        Import files one after another.

        A failure in one file never stops the batch; engine errors are
        reported as that file's failure.
        """
        results = []
        for file_name, content, content_type in files:
            try:
                results.append(self.import_statement(file_name, content, content_type))
            except ReconciliationError as e:
                logger.exception(f"Import of {file_name} failed")
                results.append(ImportResult(file_name=file_name, success=False, error=str(e)))
        return results

    def delete_statement(self, statement_id: str) -> bool:
        return self.execute(DeleteStatementCommand(statement_id))

    def clear_bank_data(self) -> int:
        return self.execute(ClearBankDataCommand())

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self) -> MatchResult:
        return self.execute(AutoReconcileCommand())

    def match_payable(
        self,
        bank_transaction_id: str,
        expense_id: str,
        processing_fee_rate: Optional[Decimal] = None,
    ) -> PayableMatchResult:
        rate = self.settings.processing_fee_rate if processing_fee_rate is None else processing_fee_rate
        return self.execute(MatchPayableCommand(bank_transaction_id, expense_id, rate))

    def link_transactions(self, expense_id: str, transaction_ids: list[str]) -> bool:
        return self.execute(LinkTransactionsCommand(expense_id, transaction_ids))

    def payable_candidates(self, bank_transaction_id: str) -> list[Expense]:
        state = self.state
        txn = state.find_transaction(bank_transaction_id)
        if txn is None:
            return []
        return rank_payables(txn, state.expenses)

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def save_expenses(self, expenses: list[Expense], run_reconciliation: bool = True) -> SaveExpensesResult:
        result = self.execute(SaveExpensesCommand(expenses))
        if run_reconciliation and result.saved_ids:
            result.matches = self.reconcile().count
        return result

    def delete_expense(self, expense_id: str) -> bool:
        return self.execute(DeleteExpenseCommand(expense_id))

    def unlink_expense(self, expense_id: str) -> bool:
        return self.execute(UnlinkExpenseCommand(expense_id))

    # ------------------------------------------------------------------
    # Categorization
    # ------------------------------------------------------------------

    def apply_rules(self) -> int:
        return self.execute(ApplyRulesCommand())

    def categorize_transaction(
        self,
        transaction_id: str,
        category: Union[str, ExpenseCategory, None],
    ) -> bool:
        return self.execute(SetCategoryCommand(transaction_id, category))

    def save_rules(self, rules: list[CategorizationRule]) -> int:
        return self.execute(SaveRulesCommand(rules))

    # ------------------------------------------------------------------
    # Backup and reports
    # ------------------------------------------------------------------

    def restore(self, backup: dict) -> dict:
        return self.execute(RestoreCommand(backup))

    def summary(self) -> dict:
        return reconciliation_summary(self.state)

    def report(self, start: date, end: date) -> list[ReportRow]:
        return build_reconciliation_report(self.state, start, end)

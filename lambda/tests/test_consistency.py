"""
Consistency Cascade Tests
=========================

Deleting and unlinking records must never leave a reconciled expense
pointing at a missing transaction, nor a transaction reconciled with no
expense claiming it.
"""

from reconciliation import FinanceStore, find_invariant_violations
from utils.document_store import BANK_STATEMENTS, BANK_TRANSACTIONS, EXPENSES

from conftest import make_expense, make_statement, make_transaction, seed_store


def _statement_fixture():
    """One statement with three debits; two linked to expenses."""
    adapter = seed_store(
        expenses=[
            make_expense("E1", "10.00", is_reconciled=True, bank_transaction_ids=["T1"]),
            make_expense("E2", "20.00", is_reconciled=True, bank_transaction_ids=["T2"]),
            make_expense("E3", "30.00"),
        ],
        transactions=[
            make_transaction("T1", "-10.00", is_reconciled=True),
            make_transaction("T2", "-20.00", is_reconciled=True),
            make_transaction("T3", "-99.00"),
            make_transaction("T9", "-5.00", statement_id="S2"),
        ],
        statements=[make_statement("S1", "hash-1", 3), make_statement("S2", "hash-2", 1)],
    )
    return adapter, FinanceStore.load(adapter)


class TestDeleteStatement:
    """Tests for statement cascade deletion."""

    def test_removes_statement_and_its_transactions(self):
        adapter, store = _statement_fixture()

        assert store.delete_statement("S1")

        assert [s["id"] for s in adapter.get_all(BANK_STATEMENTS)] == ["S2"]
        assert [t["id"] for t in adapter.get_all(BANK_TRANSACTIONS)] == ["T9"]

    def test_linked_expenses_are_unreconciled_not_deleted(self):
        adapter, store = _statement_fixture()

        store.delete_statement("S1")

        stored = {r["id"]: r for r in adapter.get_all(EXPENSES)}
        assert set(stored) == {"E1", "E2", "E3"}
        for expense_id in ("E1", "E2"):
            assert stored[expense_id]["is_reconciled"] is False
            assert stored[expense_id]["bank_transaction_ids"] == []
        assert find_invariant_violations(store.state) == []

    def test_surviving_transactions_of_affected_expense_are_released(self):
        adapter = seed_store(
            expenses=[make_expense("E1", "15.00", is_reconciled=True, bank_transaction_ids=["T1", "T9"])],
            transactions=[
                make_transaction("T1", "-10.00", is_reconciled=True),
                make_transaction("T9", "-5.00", statement_id="S2", is_reconciled=True),
            ],
            statements=[make_statement("S1", "hash-1", 1), make_statement("S2", "hash-2", 1)],
        )
        store = FinanceStore.load(adapter)

        store.delete_statement("S1")

        assert store.state.find_transaction("T9").is_reconciled is False

    def test_unknown_statement(self):
        _, store = _statement_fixture()

        assert store.delete_statement("S404") is False


class TestDeleteExpense:
    """Tests for expense deletion."""

    def test_linked_transactions_are_released(self):
        adapter, store = _statement_fixture()

        assert store.delete_expense("E1")

        assert store.state.find_expense("E1") is None
        assert store.state.find_transaction("T1").is_reconciled is False
        assert "E1" not in {r["id"] for r in adapter.get_all(EXPENSES)}

    def test_missing_expense_returns_false(self):
        _, store = _statement_fixture()

        assert store.delete_expense("E404") is False

    def test_transaction_shared_with_fee_expense_stays_reconciled(self):
        adapter = seed_store(
            expenses=[
                make_expense("E1", "105.00", is_reconciled=True, bank_transaction_ids=["T1"]),
                make_expense("FEE", "5.00", is_reconciled=True, bank_transaction_ids=["T1"]),
            ],
            transactions=[make_transaction("T1", "-100.00", is_reconciled=True)],
        )
        store = FinanceStore.load(adapter)

        store.delete_expense("E1")

        assert store.state.find_transaction("T1").is_reconciled


class TestUnlinkExpense:
    """Tests for unlinking an expense from its transactions."""

    def test_unlink_clears_both_sides(self):
        adapter, store = _statement_fixture()

        assert store.unlink_expense("E2")

        expense = store.state.find_expense("E2")
        assert not expense.is_reconciled
        assert expense.bank_transaction_ids == []
        assert store.state.find_transaction("T2").is_reconciled is False
        stored = {r["id"]: r for r in adapter.get_all(BANK_TRANSACTIONS)}
        assert stored["T2"]["is_reconciled"] is False


class TestClearBankData:
    """Tests for clearing every statement and transaction."""

    def test_clear_removes_bank_data_and_unreconciles(self):
        adapter, store = _statement_fixture()

        assert store.clear_bank_data() == 4

        assert adapter.get_all(BANK_STATEMENTS) == []
        assert adapter.get_all(BANK_TRANSACTIONS) == []
        assert all(not e["is_reconciled"] for e in adapter.get_all(EXPENSES))
        assert find_invariant_violations(store.state) == []


class TestRestore:
    """Tests for restoring a backup."""

    def test_restore_replaces_collections(self):
        adapter, store = _statement_fixture()
        backup = {
            "expenses": [make_expense("B1", "12.00").to_dict()],
            "bankTransactions": [make_transaction("BT1", "-12.00", statement_id="BS1").to_dict()],
            "bankStatements": [make_statement("BS1", "hash-b", 1).to_dict()],
        }

        counts = store.restore(backup)

        assert counts == {"expenses": 1, "bank_transactions": 1, "bank_statements": 1}
        assert [r["id"] for r in adapter.get_all(EXPENSES)] == ["B1"]
        assert [r["id"] for r in adapter.get_all(BANK_TRANSACTIONS)] == ["BT1"]
        assert [r["id"] for r in adapter.get_all(BANK_STATEMENTS)] == ["BS1"]

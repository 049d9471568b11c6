"""
Lambda Handler Tests
====================

End-to-end handler calls against an in-memory document store.

Usage:
    pytest lambda/tests/test_handlers.py -v
"""

import base64
import importlib.util
import json
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest

from models import ExpenseCategory
from utils.config import EngineSettings
from utils.document_store import BANK_STATEMENTS, EXPENSES

from conftest import make_expense, make_rule, make_statement, make_transaction, seed_store

FUNCTIONS_DIR = Path(__file__).resolve().parents[1] / "functions"


def load_handler(name: str):
    """Import lambda/functions/<name>/handler.py under a unique module name."""
    spec = importlib.util.spec_from_file_location(f"{name}_handler", FUNCTIONS_DIR / name / "handler.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def invoke(name, body, adapter, context, settings=None):
    module = load_handler(name)
    event = {"httpMethod": "POST", "body": json.dumps(body)}
    with patch.object(module, "SupabaseDocumentStore", return_value=adapter), \
            patch.object(module, "load_settings", return_value=settings or EngineSettings()):
        response = module.lambda_handler(event, context)
    return response["statusCode"], json.loads(response["body"]) if response["body"] else None


class TestImportStatementsHandler:
    """Tests for the import_statements function."""

    def test_imports_and_reports_duplicates(self, memory_store, lambda_context, statement_csv):
        content = base64.b64encode(statement_csv).decode("ascii")
        body = {"files": [
            {"file_name": "october.csv", "content": content},
            {"file_name": "copy.csv", "content": content},
        ]}

        status, data = invoke("import_statements", body, memory_store, lambda_context)

        assert status == 200
        assert data["imported"] == 1
        assert data["skipped"] == 1
        assert data["results"][1]["error_code"] == "duplicate"
        assert len(memory_store.get_all(BANK_STATEMENTS)) == 1

    def test_missing_files(self, memory_store, lambda_context):
        status, data = invoke("import_statements", {}, memory_store, lambda_context)

        assert status == 400
        assert data["error"] == "Missing files"

    def test_invalid_base64(self, memory_store, lambda_context):
        body = {"files": [{"file_name": "october.csv", "content": "***"}]}

        status, _ = invoke("import_statements", body, memory_store, lambda_context)

        assert status == 400

    def test_preflight(self, lambda_context):
        module = load_handler("import_statements")

        response = module.lambda_handler({"httpMethod": "OPTIONS"}, lambda_context)

        assert response["statusCode"] == 200
        assert response["headers"]["Access-Control-Allow-Origin"] == "*"


class TestReconcileHandler:
    """Tests for the reconcile function."""

    def test_reconcile_returns_matches_and_summary(self, lambda_context):
        adapter = seed_store(
            expenses=[make_expense("E1", "45.10")],
            transactions=[make_transaction("T1", "-45.10")],
            statements=[make_statement()],
        )

        status, data = invoke("reconcile", {"action": "reconcile"}, adapter, lambda_context)

        assert status == 200
        assert data["matches"] == 1
        assert data["summary"]["unmatched_expenses"] == []

    def test_report_requires_dates(self, memory_store, lambda_context):
        status, _ = invoke("reconcile", {"action": "report"}, memory_store, lambda_context)

        assert status == 400

    def test_report_returns_csv(self, lambda_context):
        adapter = seed_store(expenses=[make_expense("E1", "45.10")])
        body = {"action": "report", "start_date": "2025-10-01", "end_date": "2025-10-31"}

        status, data = invoke("reconcile", body, adapter, lambda_context)

        assert status == 200
        assert len(data["rows"]) == 1
        assert data["csv"].startswith('"Date"')

    def test_persistence_failure_is_bad_gateway(self, lambda_context):
        adapter = seed_store(
            expenses=[make_expense("E1", "45.10")],
            transactions=[make_transaction("T1", "-45.10")],
        )

        with patch.object(adapter, "apply_writes", side_effect=ConnectionError("down")):
            status, data = invoke("reconcile", {"action": "reconcile"}, adapter, lambda_context)

        assert status == 502
        assert "down" in data["error"]


class TestSaveExpensesHandler:
    """Tests for the save_expenses function."""

    def test_save_and_reconcile(self, lambda_context):
        adapter = seed_store(transactions=[make_transaction("T1", "-45.10")])
        body = {"expenses": [make_expense("E1", "45.10").to_dict()]}

        status, data = invoke("save_expenses", body, adapter, lambda_context)

        assert status == 200
        assert data["saved"] == 1
        assert data["matches"] == 1

    def test_invalid_category(self, memory_store, lambda_context):
        record = make_expense("E1", "45.10").to_dict()
        record["line_items"][0]["category"] = "Snacks"

        status, _ = invoke("save_expenses", {"expenses": [record]}, memory_store, lambda_context)

        assert status == 400


class TestMatchPayableHandler:
    """Tests for the match_payable function."""

    def _adapter(self):
        return seed_store(
            expenses=[make_expense("E1", "105.00", is_deferred=True)],
            transactions=[make_transaction("T1", "-100.00")],
        )

    def test_match_uses_rate_from_payload(self, lambda_context):
        adapter = self._adapter()
        body = {"action": "match", "bank_transaction_id": "T1", "expense_id": "E1", "processing_fee_rate": 2.9}

        status, data = invoke("match_payable", body, adapter, lambda_context)

        assert status == 200
        assert data["matched"] is True
        assert data["fee_amount"] == 5.0
        assert data["fee_expense_id"]
        assert len(adapter.get_all(EXPENSES)) == 2

    def test_match_uses_configured_rate(self, lambda_context):
        adapter = self._adapter()
        body = {"action": "match", "bank_transaction_id": "T1", "expense_id": "E1"}

        status, data = invoke(
            "match_payable", body, adapter, lambda_context,
            settings=EngineSettings(processing_fee_rate=Decimal("0")),
        )

        assert status == 200
        assert data["fee_expense_id"] is None

    def test_candidates(self, lambda_context):
        body = {"action": "candidates", "bank_transaction_id": "T1"}

        status, data = invoke("match_payable", body, self._adapter(), lambda_context)

        assert status == 200
        assert [c["id"] for c in data["candidates"]] == ["E1"]

    def test_link_requires_ids(self, lambda_context):
        body = {"action": "link", "expense_id": "E1", "bank_transaction_ids": []}

        status, _ = invoke("match_payable", body, self._adapter(), lambda_context)

        assert status == 400

    def test_negative_rate_is_rejected(self, lambda_context):
        body = {"action": "match", "bank_transaction_id": "T1", "expense_id": "E1", "processing_fee_rate": -1}

        status, _ = invoke("match_payable", body, self._adapter(), lambda_context)

        assert status == 400


class TestCategorizeHandler:
    """Tests for the categorize function."""

    def test_apply_rules(self, lambda_context):
        adapter = seed_store(
            transactions=[make_transaction("T1", "-40.00", description="SHELL OIL")],
            rules=[make_rule("R1", "shell", ExpenseCategory.FUEL)],
        )

        status, data = invoke("categorize", {"action": "apply_rules"}, adapter, lambda_context)

        assert status == 200
        assert data["categorized"] == 1

    def test_save_rules_generates_ids(self, memory_store, lambda_context):
        body = {"action": "save_rules", "rules": [{"keyword": "uber", "category": "Travel"}]}

        status, data = invoke("categorize", body, memory_store, lambda_context)

        assert status == 200
        assert data["rules"] == 1
        assert memory_store.get_all("categorizationRules")[0]["id"]


class TestMaintainRecordsHandler:
    """Tests for the maintain_records function."""

    def test_delete_statement(self, lambda_context):
        adapter = seed_store(
            expenses=[make_expense("E1", "10.00", is_reconciled=True, bank_transaction_ids=["T1"])],
            transactions=[make_transaction("T1", "-10.00", is_reconciled=True)],
            statements=[make_statement()],
        )

        status, data = invoke("maintain_records", {"action": "delete_statement", "statement_id": "S1"}, adapter, lambda_context)

        assert status == 200
        assert data["deleted"] is True
        assert adapter.get_all(EXPENSES)[0]["is_reconciled"] is False

    def test_unknown_action(self, memory_store, lambda_context):
        status, data = invoke("maintain_records", {"action": "purge"}, memory_store, lambda_context)

        assert status == 400
        assert "Unknown action" in data["error"]

    @pytest.mark.parametrize("action,field", [("delete_expense", "expense_id"), ("restore", "backup")])
    def test_required_fields(self, memory_store, lambda_context, action, field):
        status, data = invoke("maintain_records", {"action": action}, memory_store, lambda_context)

        assert status == 400
        assert data["error"] == f"Missing {field}"

"""
Supabase Document Store Tests
=============================

Request shapes sent to PostgREST, using httpx.MockTransport instead of the
network.
"""

import json
from unittest.mock import patch

import httpx
import pytest

from reconciliation import FinanceStore, PersistenceError
from utils.document_store import WriteBatch
from utils.supabase_client import SupabaseDocumentStore

from conftest import make_expense, make_transaction


class Recorder:
    """MockTransport handler that records requests and serves canned rows."""

    def __init__(self, rows=None, status_code=200):
        self.requests = []
        self.rows = rows or {}
        self.status_code = status_code

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            table = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(200, json=self.rows.get(table, []))
        return httpx.Response(self.status_code if self.status_code != 200 else 201)


def _store(recorder, account_id=None):
    client = httpx.Client(transport=httpx.MockTransport(recorder))
    return SupabaseDocumentStore(url="https://example.supabase.co", key="service-key", account_id=account_id, client=client)


class TestReads:
    """Tests for loading collections."""

    def test_get_all_uses_table_and_strips_account(self):
        recorder = Recorder(rows={"bank_transactions": [{"id": "T1", "account_id": "acct-1", "amount": -4.5}]})
        store = _store(recorder, account_id="acct-1")

        records = store.get_all("bankTransactions")

        assert records == [{"id": "T1", "amount": -4.5}]
        request = recorder.requests[0]
        assert request.url.path == "/rest/v1/bank_transactions"
        assert request.url.params["account_id"] == "eq.acct-1"
        assert request.headers["apikey"] == "service-key"
        assert request.headers["Authorization"] == "Bearer service-key"

    def test_rules_are_ordered_by_position(self):
        recorder = Recorder()

        _store(recorder).get_all("categorizationRules")

        assert recorder.requests[0].url.params["order"] == "position.asc"

    def test_unknown_collection(self):
        with pytest.raises(ValueError):
            _store(Recorder()).get_all("invoices")


class TestWrites:
    """Tests for upserts and deletes."""

    def test_save_many_upserts_with_merge(self):
        recorder = Recorder()
        store = _store(recorder, account_id="acct-1")

        store.save_many("expenses", [make_expense("E1", "10.00").to_dict()])

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.params["on_conflict"] == "id"
        assert request.headers["Prefer"] == "resolution=merge-duplicates,return=minimal"
        body = json.loads(request.content)
        assert body[0]["id"] == "E1"
        assert body[0]["account_id"] == "acct-1"

    def test_delete_many_is_chunked(self):
        recorder = Recorder()
        ids = [f"T{i}" for i in range(150)]

        _store(recorder).delete_many("bankTransactions", ids)

        assert [r.method for r in recorder.requests] == ["DELETE", "DELETE"]
        assert recorder.requests[0].url.params["id"].startswith("in.(T0,T1,")

    def test_apply_writes_saves_before_deletes(self):
        recorder = Recorder()
        batch = WriteBatch()
        batch.delete("bankStatements", ["S1"])
        batch.save("expenses", [make_expense("E1", "10.00").to_dict()])

        _store(recorder).apply_writes(batch)

        assert [r.method for r in recorder.requests] == ["POST", "DELETE"]

    def test_http_error_surfaces_as_persistence_error(self):
        recorder = Recorder(
            rows={
                "expenses": [make_expense("E1", "45.10").to_dict()],
                "bank_transactions": [make_transaction("T1", "-45.10").to_dict()],
            },
            status_code=500,
        )
        store = FinanceStore.load(_store(recorder))

        with pytest.raises(PersistenceError):
            store.reconcile()

        assert not store.state.find_expense("E1").is_reconciled


class TestConfiguration:
    """Tests for credential lookup."""

    def test_credentials_come_from_secrets(self):
        with patch("utils.supabase_client.get_supabase_credentials", return_value=("https://db.example.co/", "secret-key")):
            store = SupabaseDocumentStore(client=httpx.Client(transport=httpx.MockTransport(Recorder())))

        assert store._base_url == "https://db.example.co"

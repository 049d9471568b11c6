"""
Supabase Document Store
=======================

HTTP-based Supabase adapter implementing the document store contract.
Uses httpx for direct REST API calls to avoid heavy SDK dependencies.
"""

from typing import Optional

import httpx
from aws_lambda_powertools import Logger

from .document_store import (
    DocumentStore,
    EXPENSES,
    BANK_TRANSACTIONS,
    BANK_STATEMENTS,
    CATEGORIZATION_RULES,
)
from .secrets import get_supabase_credentials

logger = Logger()

# Collection name -> PostgREST table
COLLECTION_TABLES = {
    EXPENSES: "expenses",
    BANK_TRANSACTIONS: "bank_transactions",
    BANK_STATEMENTS: "bank_statements",
    CATEGORIZATION_RULES: "categorization_rules",
}

COLLECTION_ORDER = {
    EXPENSES: "created_at.asc.nullslast",
    BANK_TRANSACTIONS: "created_at.asc.nullslast",
    BANK_STATEMENTS: "uploaded_at.asc",
    CATEGORIZATION_RULES: "position.asc",
}

# Keep id lists in delete filters short enough for a URL
DELETE_CHUNK_SIZE = 100


def _get_headers(key: str) -> dict:
    """Get headers for Supabase REST API."""
    return {
        "apikey": key,
        "Authorization": f"Bearer {key}",
        "Content-Type": "application/json",
        "Prefer": "return=minimal",
    }


class SupabaseDocumentStore(DocumentStore):
    """
    Document store backed by Supabase tables.

    Writes are issued sequentially (PostgREST has no multi-table batch), so
    a failure part way through a batch is not compensated here; the engine
    rolls back its in-memory state and reports the failure.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        account_id: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        if url is None or key is None:
            secret_url, secret_key = get_supabase_credentials()
            url = url or secret_url
            key = key or secret_key
        self._base_url = url.rstrip("/")
        self._account_id = account_id
        self._client = client or httpx.Client(timeout=30.0)
        self._client.headers.update(_get_headers(key))

    def close(self) -> None:
        self._client.close()

    def _rest_url(self, collection: str) -> str:
        """Get REST API URL for a collection."""
        table = COLLECTION_TABLES.get(collection)
        if table is None:
            raise ValueError(f"Unknown collection: {collection}")
        return f"{self._base_url}/rest/v1/{table}"

    def _scope(self, params: dict) -> dict:
        if self._account_id:
            params["account_id"] = f"eq.{self._account_id}"
        return params

    # =========================================================================
    # DOCUMENT STORE CONTRACT
    # =========================================================================

    def get_all(self, collection: str) -> list[dict]:
        """Fetch every record of a collection."""
        params = self._scope({"select": "*", "order": COLLECTION_ORDER.get(collection, "id.asc")})
        response = self._client.get(self._rest_url(collection), params=params)
        response.raise_for_status()
        records = response.json()
        for record in records:
            record.pop("account_id", None)
        logger.info(f"Loaded {len(records)} records from {collection}")
        return records

    def save_many(self, collection: str, records: list[dict]) -> None:
        """Upsert records by id."""
        if not records:
            return
        payload = records
        if self._account_id:
            payload = [{**record, "account_id": self._account_id} for record in records]
        response = self._client.post(
            self._rest_url(collection),
            json=payload,
            params={"on_conflict": "id"},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )
        response.raise_for_status()
        logger.info(f"Upserted {len(records)} records into {collection}")

    def delete_many(self, collection: str, ids: list[str]) -> None:
        """Delete records by id."""
        for start in range(0, len(ids), DELETE_CHUNK_SIZE):
            chunk = ids[start:start + DELETE_CHUNK_SIZE]
            params = self._scope({"id": f"in.({','.join(chunk)})"})
            response = self._client.delete(self._rest_url(collection), params=params)
            response.raise_for_status()
        logger.info(f"Deleted {len(ids)} records from {collection}")

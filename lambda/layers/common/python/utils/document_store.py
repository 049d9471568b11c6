"""
Document Store Contract
=======================

Persistence adapter consumed by the reconciliation engine, plus the
local in-memory implementation.

Collections hold plain dict records keyed by their "id" field.
"""

import copy
from dataclasses import dataclass, field
from typing import Optional

from aws_lambda_powertools import Logger

logger = Logger()

EXPENSES = "expenses"
BANK_TRANSACTIONS = "bankTransactions"
BANK_STATEMENTS = "bankStatements"
CATEGORIZATION_RULES = "categorizationRules"

COLLECTIONS = (EXPENSES, BANK_TRANSACTIONS, BANK_STATEMENTS, CATEGORIZATION_RULES)


@dataclass
class WriteBatch:
    """
    Pending upserts and deletes produced by one command.

    Saving a record twice keeps the last version; deleting a record drops
    any pending save for it.
    """

    saves: dict[str, dict[str, dict]] = field(default_factory=dict)
    deletes: dict[str, list[str]] = field(default_factory=dict)

    def save(self, collection: str, records: list[dict]) -> None:
        bucket = self.saves.setdefault(collection, {})
        for record in records:
            bucket[record["id"]] = record

    def delete(self, collection: str, ids: list[str]) -> None:
        pending = self.deletes.setdefault(collection, [])
        bucket = self.saves.get(collection, {})
        for record_id in ids:
            bucket.pop(record_id, None)
            if record_id not in pending:
                pending.append(record_id)

    def saved(self, collection: str) -> list[dict]:
        return list(self.saves.get(collection, {}).values())

    def deleted(self, collection: str) -> list[str]:
        return list(self.deletes.get(collection, []))

    @property
    def is_empty(self) -> bool:
        return not any(self.saves.values()) and not any(self.deletes.values())

    def summary(self) -> dict:
        return {
            "saves": {name: len(records) for name, records in self.saves.items() if records},
            "deletes": {name: len(ids) for name, ids in self.deletes.items() if ids},
        }


class DocumentStore:
    """
    Persistence contract.

    Implementations must provide get_all / save_many / delete_many.
    apply_writes defaults to best-effort sequential writes; stores that
    support atomic batches override it.
    """

    def get_all(self, collection: str) -> list[dict]:
        raise NotImplementedError

    def save_many(self, collection: str, records: list[dict]) -> None:
        raise NotImplementedError

    def delete_many(self, collection: str, ids: list[str]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "DocumentStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def apply_writes(self, batch: WriteBatch) -> None:
        """Issue saves first, then deletes, one collection at a time."""
        for collection, records in batch.saves.items():
            if records:
                self.save_many(collection, list(records.values()))
        for collection, ids in batch.deletes.items():
            if ids:
                self.delete_many(collection, list(ids))


class MemoryDocumentStore(DocumentStore):
    """
    Local embedded store.

    Keeps records in insertion order and applies write batches atomically:
    the batch is applied to a copy which replaces the live data only when
    every write succeeded.
    """

    def __init__(self, initial: Optional[dict[str, list[dict]]] = None):
        self._collections: dict[str, dict[str, dict]] = {name: {} for name in COLLECTIONS}
        for name, records in (initial or {}).items():
            self._collections.setdefault(name, {})
            for record in records:
                self._collections[name][record["id"]] = copy.deepcopy(record)

    def get_all(self, collection: str) -> list[dict]:
        return [copy.deepcopy(record) for record in self._collections.get(collection, {}).values()]

    def save_many(self, collection: str, records: list[dict]) -> None:
        bucket = self._collections.setdefault(collection, {})
        for record in records:
            existing = bucket.get(record["id"], {})
            bucket[record["id"]] = {**existing, **copy.deepcopy(record)}

    def delete_many(self, collection: str, ids: list[str]) -> None:
        bucket = self._collections.get(collection, {})
        for record_id in ids:
            bucket.pop(record_id, None)

    def apply_writes(self, batch: WriteBatch) -> None:
        live = self._collections
        self._collections = copy.deepcopy(live)
        try:
            super().apply_writes(batch)
        except Exception:
            self._collections = live
            raise
        logger.debug("Applied write batch", extra=batch.summary())

"""
Bank Statement Data Model
=========================

Immutable header describing one imported statement file.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .fields import parse_datetime


@dataclass
class BankStatement:
    """Imported statement file; `file_hash` is the dedup key."""

    id: str
    file_name: str
    file_hash: str
    uploaded_at: Optional[datetime] = None
    transaction_count: int = 0
    statement_period: Optional[str] = None  # e.g. "Oct 2025"

    @classmethod
    def from_dict(cls, data: dict) -> "BankStatement":
        return cls(
            id=data.get("id", ""),
            file_name=data.get("file_name", ""),
            file_hash=data.get("file_hash", ""),
            uploaded_at=parse_datetime(data.get("uploaded_at")),
            transaction_count=int(data.get("transaction_count", 0)),
            statement_period=data.get("statement_period"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "file_name": self.file_name,
            "file_hash": self.file_hash,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
            "transaction_count": self.transaction_count,
            "statement_period": self.statement_period,
        }

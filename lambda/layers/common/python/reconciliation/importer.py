"""
Bank Statement Importer
=======================

Deduplicates statement files by content hash and persists the statement
header together with its transactions.
"""

from datetime import date, datetime, timezone
from typing import Optional

from aws_lambda_powertools import Logger

from models import BankStatement, BankTransaction, ImportErrorCode, ImportResult
from utils.document_store import WriteBatch, BANK_STATEMENTS
from utils.identifiers import content_hash, generate_id

from .commands import Command, save_transactions
from .errors import StatementParseError
from .state import FinanceState
from .statement_parser import parse_statement

logger = Logger()

CSV_CONTENT_TYPES = {"text/csv", "application/csv", "application/vnd.ms-excel"}
TEXT_ENCODINGS = ["utf-8-sig", "utf-8", "cp1252", "latin-1"]


def is_supported_file(file_name: str, content_type: Optional[str] = None) -> bool:
    return (content_type or "").lower() in CSV_CONTENT_TYPES or file_name.lower().endswith(".csv")


def decode_statement_bytes(content: bytes) -> Optional[str]:
    for encoding in TEXT_ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return None


def describe_period(start: date, end: date) -> str:
    """Display label such as "Oct 2025" or "Oct 2025 - Nov 2025"."""
    first = start.strftime("%b %Y")
    last = end.strftime("%b %Y")
    return first if first == last else f"{first} - {last}"


class ImportStatementCommand(Command):
    """
    Import one statement file.

    Duplicates, unsupported files and files without usable rows produce a
    failed ImportResult and leave the state untouched.
    """

    name = "import_statement"

    def __init__(self, file_name: str, content: bytes, content_type: Optional[str] = None):
        self.file_name = file_name
        self.content = content
        self.content_type = content_type

    def apply(self, state: FinanceState, writes: WriteBatch) -> ImportResult:
        file_hash = content_hash(self.content)
        if any(s.file_hash == file_hash for s in state.statements):
            logger.info(f"Skipping duplicate statement {self.file_name}")
            return self._failure(f"Skipped: {self.file_name} (already imported).", ImportErrorCode.DUPLICATE)

        if not is_supported_file(self.file_name, self.content_type):
            return self._failure("Unsupported file type.", ImportErrorCode.UNSUPPORTED_FILE)

        text = decode_statement_bytes(self.content)
        if text is None:
            return self._failure(f"Could not decode {self.file_name} as text.", ImportErrorCode.UNSUPPORTED_FILE)

        try:
            parsed = parse_statement(text)
        except StatementParseError as e:
            logger.warning(f"Failed to parse {self.file_name}: {e}")
            return self._failure(f"Could not parse {self.file_name}: {e}", ImportErrorCode.PARSE_ERROR)

        if not parsed.transactions:
            detail = ""
            if parsed.unresolved_fields:
                detail = f" (missing columns: {', '.join(parsed.unresolved_fields)})"
            return self._failure(
                f"No transactions found in {self.file_name}; unsupported statement format{detail}.",
                ImportErrorCode.NO_TRANSACTIONS,
            )

        now = datetime.now(timezone.utc)
        start, end = parsed.period
        statement = BankStatement(
            id=generate_id(),
            file_name=self.file_name,
            file_hash=file_hash,
            uploaded_at=now,
            transaction_count=len(parsed.transactions),
            statement_period=describe_period(start, end),
        )
        transactions = [
            BankTransaction(
                id=generate_id(),
                transaction_date=draft.transaction_date,
                description=draft.description,
                amount=draft.amount,
                statement_id=statement.id,
                created_at=now,
            )
            for draft in parsed.transactions
        ]

        state.statements.append(statement)
        state.transactions.extend(transactions)
        writes.save(BANK_STATEMENTS, [statement.to_dict()])
        save_transactions(writes, transactions)

        logger.info(f"Imported {statement.transaction_count} transactions from {self.file_name}")
        return ImportResult(
            file_name=self.file_name,
            success=True,
            statement_id=statement.id,
            transaction_count=statement.transaction_count,
        )

    def _failure(self, message: str, code: ImportErrorCode) -> ImportResult:
        return ImportResult(file_name=self.file_name, success=False, error=message, error_code=code)

"""
Bank Statement Parser
=====================

Turns delimited statement text into normalized transaction drafts.

Header names are matched case-insensitively by substring. Each logical
field has an ordered list of candidate substrings and the first header
containing any of them wins, so "Transaction Date" and "Posted Date" both
resolve the date column (whichever comes first).
"""

import csv
import io
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from aws_lambda_powertools import Logger

from .errors import StatementParseError

logger = Logger()

UNKNOWN_DESCRIPTION = "Unknown"

# Logical field -> candidate header substrings, in priority order
COLUMN_CANDIDATES = {
    "date": ("date",),
    "description": ("description", "details"),
    "debit": ("debit", "withdrawal"),
    "credit": ("credit", "deposit"),
    "amount": ("amount",),
}

DATE_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%d/%m/%Y",
    "%m-%d-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%Y/%m/%d",
]


@dataclass(frozen=True)
class ColumnMatch:
    """Resolution of one logical field to a column; index is None when unresolved."""

    field: str
    index: Optional[int] = None
    header: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.index is not None

    def value(self, row: list[str]) -> str:
        if self.index is None or self.index >= len(row):
            return ""
        return (row[self.index] or "").strip()


@dataclass(frozen=True)
class TransactionDraft:
    """Parsed row, not yet owned by a statement."""

    transaction_date: date
    description: str
    amount: Decimal


@dataclass
class ParsedStatement:
    columns: dict[str, ColumnMatch] = field(default_factory=dict)
    transactions: list[TransactionDraft] = field(default_factory=list)
    discarded_rows: int = 0

    @property
    def unresolved_fields(self) -> list[str]:
        return [name for name, match in self.columns.items() if not match.resolved]

    @property
    def period(self) -> Optional[tuple[date, date]]:
        if not self.transactions:
            return None
        dates = [t.transaction_date for t in self.transactions]
        return min(dates), max(dates)


def normalize_header_name(value: str) -> str:
    return " ".join((value or "").strip().lower().split())


def resolve_column(field_name: str, headers: list[str]) -> ColumnMatch:
    """Return the first header containing one of the field's candidates."""
    candidates = COLUMN_CANDIDATES[field_name]
    for index, header in enumerate(headers):
        if any(candidate in header for candidate in candidates):
            return ColumnMatch(field=field_name, index=index, header=header)
    return ColumnMatch(field=field_name)


def resolve_columns(headers: list[str]) -> dict[str, ColumnMatch]:
    normalized = [normalize_header_name(h) for h in headers]
    return {name: resolve_column(name, normalized) for name in COLUMN_CANDIDATES}


def parse_money(value: str) -> Optional[Decimal]:
    text = (value or "").strip()
    if not text:
        return None
    cleaned = text.replace(",", "").replace("$", "").replace(" ", "")
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = f"-{cleaned[1:-1]}"
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    # NaN and Infinity are not money
    if not amount.is_finite():
        return None
    return amount


def parse_statement_date(value: str) -> Optional[date]:
    cleaned = re.sub(r"\s+", " ", (value or "").strip().replace(",", " ").replace(".", ""))
    if not cleaned:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    # ISO timestamps ("2025-10-03T14:22:00")
    try:
        return datetime.fromisoformat(value.strip()).date()
    except ValueError:
        return None


def resolve_amount(row: list[str], columns: dict[str, ColumnMatch]) -> Decimal:
    """
    Debit (negated) wins over credit, which wins over a generic amount column.

    Blank and zero cells count as empty, so banks that print "0.00" in the
    unused debit/credit column still resolve.
    """
    debit = parse_money(columns["debit"].value(row))
    if debit:
        return -debit
    credit = parse_money(columns["credit"].value(row))
    if credit:
        return credit
    return parse_money(columns["amount"].value(row)) or Decimal("0")


def parse_statement(content: str, delimiter: str = ",", today: Optional[date] = None) -> ParsedStatement:
    """
    Parse statement text into transaction drafts.

    Rows whose description resolves to "Unknown" or whose amount is zero are
    discarded. An empty date cell takes `today`; a date that cannot be read
    raises StatementParseError.
    """
    lines = [line for line in content.splitlines() if line.strip()]
    if not lines:
        return ParsedStatement()

    rows = list(csv.reader(io.StringIO("\n".join(lines)), delimiter=delimiter))
    header, data_rows = rows[0], rows[1:]
    columns = resolve_columns(header)
    parsed = ParsedStatement(columns=columns)

    if not columns["date"].resolved:
        logger.warning(f"Statement has no date column (headers: {header})")
        parsed.discarded_rows = len(data_rows)
        return parsed

    default_date = today or date.today()

    for line_number, row in enumerate(data_rows, start=2):
        description = columns["description"].value(row) or UNKNOWN_DESCRIPTION
        amount = resolve_amount(row, columns)
        if description == UNKNOWN_DESCRIPTION or amount == 0:
            parsed.discarded_rows += 1
            continue

        raw_date = columns["date"].value(row)
        transaction_date = parse_statement_date(raw_date) if raw_date else default_date
        if transaction_date is None:
            raise StatementParseError(f"Unrecognized date {raw_date!r} on line {line_number}")

        parsed.transactions.append(TransactionDraft(
            transaction_date=transaction_date,
            description=description,
            amount=amount,
        ))

    logger.info(
        f"Parsed {len(parsed.transactions)} transactions "
        f"({parsed.discarded_rows} rows discarded)"
    )
    return parsed

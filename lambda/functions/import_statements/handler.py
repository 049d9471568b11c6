"""
Import Statements Lambda Handler
================================

Imports uploaded bank statement CSV files. Each file is deduplicated by
content hash, parsed, persisted with its transactions, and followed by an
automatic reconciliation pass.
"""

from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from models import ImportResult
from reconciliation import FinanceStore, PersistenceError
from utils.api import (
    cors_preflight_response,
    decode_file_content,
    error_response,
    is_preflight,
    parse_request_body,
    success_response,
)
from utils.config import load_settings
from utils.supabase_client import SupabaseDocumentStore

logger = Logger()
metrics = Metrics()
tracer = Tracer()


@logger.inject_lambda_context
@metrics.log_metrics
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """
    Import one or more bank statements.

    Expected payload:
    {
        "files": [
            {
                "file_name": "october.csv",
                "content": "<base64>",
                "content_type": "text/csv"  # Optional
            }
        ]
    }
    """
    if is_preflight(event):
        return cors_preflight_response()

    try:
        body = parse_request_body(event)
        files = _read_files(body.get("files"))
    except ValueError as e:
        return error_response(400, str(e))

    logger.info(f"Importing {len(files)} statement file(s)")

    try:
        results = import_files(files)
    except PersistenceError as e:
        logger.exception(f"Error importing statements: {e}")
        return error_response(502, str(e))
    except Exception as e:
        logger.exception(f"Error importing statements: {e}")
        return error_response(500, str(e))

    imported = [r for r in results if r.success]
    duplicates = [r for r in results if r.is_duplicate]
    failed = [r for r in results if not r.success and not r.is_duplicate]
    matches = sum(r.matches for r in imported)

    metrics.add_metric(name="StatementsImported", unit=MetricUnit.Count, value=len(imported))
    metrics.add_metric(name="DuplicateStatements", unit=MetricUnit.Count, value=len(duplicates))
    metrics.add_metric(name="StatementImportFailures", unit=MetricUnit.Count, value=len(failed))
    metrics.add_metric(name="AutoMatches", unit=MetricUnit.Count, value=matches)

    return success_response({
        "imported": len(imported),
        "skipped": len(duplicates),
        "failed": len(failed),
        "matches": matches,
        "results": [r.to_dict() for r in results],
    })


def _read_files(files: Any) -> list[tuple[str, bytes, Any]]:
    if not isinstance(files, list) or not files:
        raise ValueError("Missing files")

    decoded = []
    for index, item in enumerate(files):
        if not isinstance(item, dict) or not item.get("file_name"):
            raise ValueError(f"File {index} is missing file_name")
        decoded.append((item["file_name"], decode_file_content(item.get("content")), item.get("content_type")))
    return decoded


@tracer.capture_method
def import_files(files: list[tuple[str, bytes, Any]]) -> list[ImportResult]:
    settings = load_settings()
    with SupabaseDocumentStore(account_id=settings.account_id) as adapter:
        store = FinanceStore.load(adapter, settings=settings)
        results = store.import_statements(files)

    for result in results:
        if result.success:
            logger.info(f"Imported {result.file_name}: {result.transaction_count} transactions, {result.matches} matches")
        else:
            logger.info(f"Did not import {result.file_name}: {result.error}")
    return results

"""
Save Expenses Lambda Handler
============================

Upserts expenses captured by the web app (receipt extraction or manual
entry) and, unless disabled, runs automatic reconciliation afterwards.
"""

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from models import Expense
from reconciliation import FinanceStore, InvariantViolationError, PersistenceError
from utils.api import (
    cors_preflight_response,
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
    Expected payload:
    {
        "expenses": [{"id": "...", "vendor": "...", "date": "2025-10-03", "total": 42.5, ...}],
        "run_reconciliation": true  # Optional, defaults to true
    }
    """
    if is_preflight(event):
        return cors_preflight_response()

    try:
        body = parse_request_body(event)
        records = body.get("expenses")
        if not isinstance(records, list) or not records:
            raise ValueError("Missing expenses")
        expenses = [Expense.from_dict(record) for record in records]
        run_reconciliation = bool(body.get("run_reconciliation", True))
    except ValueError as e:
        return error_response(400, str(e))

    logger.info(f"Saving {len(expenses)} expense(s)")

    try:
        settings = load_settings()
        with SupabaseDocumentStore(account_id=settings.account_id) as adapter:
            store = FinanceStore.load(adapter, settings=settings)
            result = store.save_expenses(expenses, run_reconciliation=run_reconciliation)

        metrics.add_metric(name="ExpensesSaved", unit=MetricUnit.Count, value=len(result.saved_ids))
        metrics.add_metric(name="DuplicateReceipts", unit=MetricUnit.Count, value=result.skipped_duplicates)
        metrics.add_metric(name="AutoMatches", unit=MetricUnit.Count, value=result.matches)

        return success_response(result.to_dict())

    except (ValueError, InvariantViolationError) as e:
        return error_response(400, str(e))
    except PersistenceError as e:
        logger.exception(f"Error saving expenses: {e}")
        return error_response(502, str(e))
    except Exception as e:
        logger.exception(f"Error saving expenses: {e}")
        return error_response(500, str(e))

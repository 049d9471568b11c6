"""
Maintain Records Lambda Handler
===============================

Deletes and unlinks with their reconciliation cascades, plus backup restore.
"""

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

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

# action -> required field
ACTIONS = {
    "delete_expense": "expense_id",
    "unlink_expense": "expense_id",
    "delete_statement": "statement_id",
    "clear_bank_data": None,
    "restore": "backup",
}


@logger.inject_lambda_context
@metrics.log_metrics
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """
    Expected payload:
    {"action": "delete_expense", "expense_id": "..."}
    {"action": "unlink_expense", "expense_id": "..."}
    {"action": "delete_statement", "statement_id": "..."}
    {"action": "clear_bank_data"}
    {"action": "restore", "backup": {"expenses": [...], "bankTransactions": [...], "bankStatements": [...]}}
    """
    if is_preflight(event):
        return cors_preflight_response()

    try:
        body = parse_request_body(event)
        action = body.get("action")
        if not isinstance(action, str) or action not in ACTIONS:
            raise ValueError(f"Unknown action: {action}")
        required = ACTIONS[action]
        if required and not body.get(required):
            raise ValueError(f"Missing {required}")
    except ValueError as e:
        return error_response(400, str(e))

    logger.info(f"Running {action}")

    try:
        settings = load_settings()
        with SupabaseDocumentStore(account_id=settings.account_id) as adapter:
            store = FinanceStore.load(adapter, settings=settings)
            response = _run(store, action, body)

        metrics.add_metric(name="RecordMaintenance", unit=MetricUnit.Count, value=1)
        return success_response(response)

    except (ValueError, InvariantViolationError) as e:
        return error_response(400, str(e))
    except PersistenceError as e:
        logger.exception(f"Error running {action}: {e}")
        return error_response(502, str(e))
    except Exception as e:
        logger.exception(f"Error running {action}: {e}")
        return error_response(500, str(e))


@tracer.capture_method
def _run(store: FinanceStore, action: str, body: dict) -> dict:
    if action == "delete_expense":
        deleted = store.delete_expense(body["expense_id"])
        return {"deleted": deleted}
    if action == "unlink_expense":
        unlinked = store.unlink_expense(body["expense_id"])
        return {"unlinked": unlinked}
    if action == "delete_statement":
        deleted = store.delete_statement(body["statement_id"])
        return {"deleted": deleted}
    if action == "clear_bank_data":
        removed = store.clear_bank_data()
        return {"transactions_removed": removed}
    return {"restored": store.restore(body["backup"])}

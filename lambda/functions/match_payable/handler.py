"""
Match Payable Lambda Handler
============================

User-directed reconciliation:
- match: settle a deferred expense against one deposit or debit, booking a
  processing fee expense when the invoice exceeds the amount received
- link: reconcile an expense against hand-picked bank transactions
- candidates: list open payables closest in amount to a transaction
"""

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from reconciliation import FinanceStore, PersistenceError
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

ACTIONS = ("match", "link", "candidates")


@logger.inject_lambda_context
@metrics.log_metrics
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """
    Expected payload:
    {
        "action": "match",
        "bank_transaction_id": "...",
        "expense_id": "...",
        "processing_fee_rate": 2.9  # Optional, percent; overrides the environment
    }
    {"action": "link", "expense_id": "...", "bank_transaction_ids": ["...", "..."]}
    {"action": "candidates", "bank_transaction_id": "..."}
    """
    if is_preflight(event):
        return cors_preflight_response()

    try:
        body = parse_request_body(event)
        action = body.get("action") or "match"
        if action not in ACTIONS:
            raise ValueError(f"Unknown action: {action}")
        settings = load_settings().with_fee_rate(body.get("processing_fee_rate"))
        _require(body, action)
    except ValueError as e:
        return error_response(400, str(e))

    try:
        with SupabaseDocumentStore(account_id=settings.account_id) as adapter:
            store = FinanceStore.load(adapter, settings=settings)

            if action == "candidates":
                candidates = store.payable_candidates(body["bank_transaction_id"])
                return success_response({"candidates": [e.to_dict() for e in candidates]})

            if action == "link":
                linked = store.link_transactions(body["expense_id"], body["bank_transaction_ids"])
                if linked:
                    metrics.add_metric(name="ManualLinks", unit=MetricUnit.Count, value=1)
                return success_response({"linked": linked, "expense_id": body["expense_id"]})

            result = store.match_payable(body["bank_transaction_id"], body["expense_id"])

        if result.matched:
            metrics.add_metric(name="PayablesMatched", unit=MetricUnit.Count, value=1)
        if result.fee_expense_id:
            metrics.add_metric(name="ProcessingFeesRecorded", unit=MetricUnit.Count, value=1)
        return success_response(result.to_dict())

    except ValueError as e:
        return error_response(400, str(e))
    except PersistenceError as e:
        logger.exception(f"Error matching payable: {e}")
        return error_response(502, str(e))
    except Exception as e:
        logger.exception(f"Error matching payable: {e}")
        return error_response(500, str(e))


def _require(body: dict, action: str) -> None:
    fields = {
        "match": ("bank_transaction_id", "expense_id"),
        "link": ("expense_id", "bank_transaction_ids"),
        "candidates": ("bank_transaction_id",),
    }[action]
    for name in fields:
        if not body.get(name):
            raise ValueError(f"Missing {name}")
    if action == "link" and not isinstance(body["bank_transaction_ids"], list):
        raise ValueError("bank_transaction_ids must be a list")

"""
Categorize Lambda Handler
=========================

Keyword rule maintenance and bank transaction categorization.
"""

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from models import CategorizationRule
from reconciliation import FinanceStore, PersistenceError
from utils.api import (
    cors_preflight_response,
    error_response,
    is_preflight,
    parse_request_body,
    success_response,
)
from utils.config import load_settings
from utils.identifiers import generate_id
from utils.supabase_client import SupabaseDocumentStore

logger = Logger()
metrics = Metrics()
tracer = Tracer()

ACTIONS = ("apply_rules", "set_category", "save_rules")


@logger.inject_lambda_context
@metrics.log_metrics
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """
    Expected payload:
    {"action": "apply_rules"}
    {"action": "set_category", "bank_transaction_id": "...", "category": "Fuel"}  # null clears
    {"action": "save_rules", "rules": [{"id": "...", "keyword": "shell", "category": "Fuel"}]}
    """
    if is_preflight(event):
        return cors_preflight_response()

    try:
        body = parse_request_body(event)
        action = body.get("action") or "apply_rules"
        if action not in ACTIONS:
            raise ValueError(f"Unknown action: {action}")
        rules = _read_rules(body.get("rules")) if action == "save_rules" else None
        if action == "set_category" and not body.get("bank_transaction_id"):
            raise ValueError("Missing bank_transaction_id")
    except ValueError as e:
        return error_response(400, str(e))

    try:
        settings = load_settings()
        with SupabaseDocumentStore(account_id=settings.account_id) as adapter:
            store = FinanceStore.load(adapter, settings=settings)

            if action == "save_rules":
                saved = store.save_rules(rules)
                return success_response({"rules": saved})

            if action == "set_category":
                updated = store.categorize_transaction(body["bank_transaction_id"], body.get("category"))
                return success_response({"updated": updated})

            categorized = store.apply_rules()

        metrics.add_metric(name="TransactionsCategorized", unit=MetricUnit.Count, value=categorized)
        return success_response({"categorized": categorized})

    except ValueError as e:
        return error_response(400, str(e))
    except PersistenceError as e:
        logger.exception(f"Error categorizing transactions: {e}")
        return error_response(502, str(e))
    except Exception as e:
        logger.exception(f"Error categorizing transactions: {e}")
        return error_response(500, str(e))


def _read_rules(records) -> list[CategorizationRule]:
    if not isinstance(records, list):
        raise ValueError("rules must be a list")
    rules = []
    for record in records:
        if not isinstance(record, dict) or not record.get("category"):
            raise ValueError("Each rule needs a keyword and a category")
        rules.append(CategorizationRule.from_dict({**record, "id": record.get("id") or generate_id()}))
    return rules

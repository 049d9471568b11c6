"""
Reconcile Lambda Handler
========================

Runs the automatic matcher on demand and reports open reconciliation items.
"""

from datetime import date

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from models.fields import parse_date
from reconciliation import FinanceStore, PersistenceError, report_to_csv
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

ACTIONS = ("reconcile", "summary", "report")


@logger.inject_lambda_context
@metrics.log_metrics
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    """
    Expected payload:
    {
        "action": "reconcile" | "summary" | "report",
        "start_date": "2025-10-01",  # report only
        "end_date": "2025-10-31"     # report only
    }
    """
    if is_preflight(event):
        return cors_preflight_response()

    try:
        body = parse_request_body(event)
        action = body.get("action") or "reconcile"
        if action not in ACTIONS:
            raise ValueError(f"Unknown action: {action}")
        period = _report_period(body) if action == "report" else None
    except ValueError as e:
        return error_response(400, str(e))

    try:
        settings = load_settings()
        with SupabaseDocumentStore(account_id=settings.account_id) as adapter:
            store = FinanceStore.load(adapter, settings=settings)

            if action == "report":
                rows = store.report(*period)
                return success_response({
                    "rows": [row.to_dict() for row in rows],
                    "csv": report_to_csv(rows),
                })

            response = {}
            if action == "reconcile":
                result = store.reconcile()
                metrics.add_metric(name="AutoMatches", unit=MetricUnit.Count, value=result.count)
                response.update(result.to_dict())
            response["summary"] = store.summary()

        return success_response(response)

    except ValueError as e:
        return error_response(400, str(e))
    except PersistenceError as e:
        logger.exception(f"Error running reconciliation: {e}")
        return error_response(502, str(e))
    except Exception as e:
        logger.exception(f"Error running reconciliation: {e}")
        return error_response(500, str(e))


def _report_period(body: dict) -> tuple[date, date]:
    start = parse_date(body.get("start_date"))
    end = parse_date(body.get("end_date"))
    if start is None or end is None:
        raise ValueError("start_date and end_date are required for a report")
    return start, end

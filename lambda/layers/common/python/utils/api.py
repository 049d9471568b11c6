"""
API Gateway Helpers
===================

Request parsing and response shaping shared by the Lambda handlers.
"""

import base64
import json
from typing import Any

CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, X-Api-Key, x-api-key",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def is_preflight(event: dict) -> bool:
    http_method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method", "")
    return http_method == "OPTIONS"


def parse_request_body(event: dict) -> dict:
    """Parse request body from API Gateway event."""
    body = event.get("body") or "{}"
    if event.get("isBase64Encoded") and isinstance(body, str):
        body = base64.b64decode(body).decode("utf-8")
    if isinstance(body, str):
        body = json.loads(body)
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


def decode_file_content(value: Any) -> bytes:
    """Decode a base64 file payload; raises ValueError on bad input."""
    if not isinstance(value, str) or not value:
        raise ValueError("File content must be a non-empty base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (ValueError, TypeError) as e:
        raise ValueError(f"File content is not valid base64: {e}")


def cors_preflight_response() -> dict:
    """Handle CORS preflight OPTIONS request."""
    return {
        "statusCode": 200,
        "headers": CORS_HEADERS,
        "body": ""
    }


def success_response(data: dict) -> dict:
    """Create success API Gateway response."""
    return {
        "statusCode": 200,
        "headers": CORS_HEADERS,
        "body": json.dumps(data, default=str)
    }


def error_response(status_code: int, message: str) -> dict:
    """Create error API Gateway response."""
    return {
        "statusCode": status_code,
        "headers": CORS_HEADERS,
        "body": json.dumps({"error": message})
    }

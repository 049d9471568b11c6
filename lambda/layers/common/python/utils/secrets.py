"""
AWS Secrets Manager Utilities
=============================

Database credentials for the reconciliation functions live in one JSON
secret. It is fetched once per Lambda execution context and cached.
"""

import json
import os
from functools import lru_cache
from typing import Any

import boto3
from botocore.exceptions import ClientError
from aws_lambda_powertools import Logger

logger = Logger()

DEFAULT_SECRET_NAME = "fieldbook-reconciler-secrets"

# Required keys in the secret
SUPABASE_URL = "SUPABASE_URL"
SUPABASE_KEY = "SUPABASE_KEY"


def secret_name() -> str:
    return os.environ.get("FINANCE_SECRETS_NAME") or DEFAULT_SECRET_NAME


@lru_cache(maxsize=4)
def load_secrets(name: str) -> dict[str, Any]:
    """
    Fetch and decode one JSON secret.

    Raises:
        ClientError: If secret retrieval fails
    """
    client = boto3.client("secretsmanager")
    try:
        response = client.get_secret_value(SecretId=name)
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        logger.error(f"Failed to retrieve secret {name}: {error_code}")
        raise

    logger.info(f"Retrieved secret {name} from Secrets Manager")
    return json.loads(response["SecretString"])


def get_all_secrets() -> dict[str, Any]:
    return load_secrets(secret_name())


def get_secret(key: str, default: Any = None) -> Any:
    return get_all_secrets().get(key, default)


def get_supabase_credentials() -> tuple[str, str]:
    """Return (url, key); raises ValueError when either is missing."""
    secrets = get_all_secrets()
    missing = [k for k in (SUPABASE_URL, SUPABASE_KEY) if not secrets.get(k)]
    if missing:
        raise ValueError(f"Secret {secret_name()} is missing {', '.join(missing)}")
    return secrets[SUPABASE_URL], secrets[SUPABASE_KEY]

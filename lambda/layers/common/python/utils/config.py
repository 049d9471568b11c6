"""
Engine Settings
===============

Non-secret configuration read from the Lambda environment.
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any, Optional

from aws_lambda_powertools import Logger

logger = Logger()


@dataclass(frozen=True)
class EngineSettings:
    """Settings shared by every reconciliation function."""

    processing_fee_rate: Decimal = Decimal("0")  # percent, e.g. 2.9
    account_id: Optional[str] = None

    def with_fee_rate(self, value: Any) -> "EngineSettings":
        """Return a copy with the fee rate overridden from a request payload."""
        if value is None or value == "":
            return self
        return EngineSettings(processing_fee_rate=parse_rate(value), account_id=self.account_id)


def parse_rate(value: Any) -> Decimal:
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid processing fee rate: {value!r}")
    if rate < 0:
        raise ValueError(f"Processing fee rate cannot be negative: {value!r}")
    return rate


@lru_cache(maxsize=1)
def load_settings() -> EngineSettings:
    """Read settings once per execution context."""
    raw_rate = os.environ.get("PROCESSING_FEE_RATE", "0")
    try:
        rate = parse_rate(raw_rate)
    except ValueError as e:
        logger.warning(f"Ignoring PROCESSING_FEE_RATE: {e}")
        rate = Decimal("0")

    settings = EngineSettings(
        processing_fee_rate=rate,
        account_id=os.environ.get("FINANCE_ACCOUNT_ID") or None,
    )
    logger.debug("Loaded engine settings", extra={"processing_fee_rate": str(rate)})
    return settings

"""Structured logging for quote calculations."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class StructuredCalculationLogger:
    """Structured logger for quote calculations."""

    def log_calculation(
        self,
        client_name: str,
        currency_code: str,
        outcome: str,
        latency_ms: float,
        leg_count: int,
        warning_count: int = 0,
        blocking_codes: list[str] | None = None,
        total_sell: str | None = None,
    ) -> None:
        """Log one calculate() call with structured data."""
        log_data: dict[str, Any] = {
            "client_name": client_name,
            "currency": currency_code,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
            "legs": leg_count,
            "warnings": warning_count,
        }

        if blocking_codes:
            log_data["blocking_codes"] = blocking_codes
        if total_sell is not None:
            log_data["total_sell"] = total_sell

        log_msg = f"Quote calculation: {client_name} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

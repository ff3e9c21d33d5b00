"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from house_risk.config import settings

logger = logging.getLogger("house_risk")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_hsi_update(
    house_id: int,
    score: int,
    bracket: int,
    risk_multiplier: Decimal,
    reason: str,
    duration_ms: float,
) -> None:
    """Log structured HSI recomputation outcome"""
    logger.info(
        "HSI updated",
        extra={
            "house_id": house_id,
            "step": "hsi_update",
            "score": score,
            "bracket": bracket,
            "risk_multiplier": str(risk_multiplier),
            "reason": reason,
            "duration_ms": duration_ms,
        },
    )


def log_advance(
    house_id: int | None,
    bill_id: int,
    amount: Decimal,
    charge_count: int,
    outcome: str,
) -> None:
    """Log structured advance outcome (advanced | rejected | noop)"""
    logger.info(
        "Advance processed",
        extra={
            "house_id": house_id,
            "bill_id": bill_id,
            "step": "advance",
            "amount": str(amount),
            "charge_count": charge_count,
            "outcome": outcome,
        },
    )


def log_ledger_drift(house_id: int, state_based: Decimal, transaction_based: Decimal) -> None:
    """State-based and ledger-based outstanding totals disagree"""
    logger.warning(
        "Advance ledger drift detected",
        extra={
            "house_id": house_id,
            "step": "ledger_audit",
            "state_based": str(state_based),
            "transaction_based": str(transaction_based),
            "drift": str(state_based - transaction_based),
        },
    )

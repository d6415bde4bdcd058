"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from merchant_pos.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: Optional[str] = None) -> None:
    """Configure structured JSON logging; level defaults to settings.log_level"""
    logger = logging.getLogger()
    logger.setLevel((level or settings.log_level).upper())

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_outcome(
    beneficiary_id: str,
    outcome_kind: str,
    attempts_remaining: int,
    duration_ms: float,
) -> None:
    """Log structured authorization outcome for analysis (never the PIN)"""
    logging.info(
        "Authorization completed",
        extra={
            "step": "authorization_complete",
            "beneficiary_id": beneficiary_id,
            "outcome": outcome_kind,
            "attempts_remaining": attempts_remaining,
            "duration_ms": duration_ms,
        },
    )


def log_history_fetch(
    page: int,
    status: Optional[str],
    received: int,
    dropped: int,
    duration_ms: float,
) -> None:
    """Log structured history page fetch"""
    logging.info(
        "History page fetched",
        extra={
            "step": "history_fetch",
            "page": page,
            "status_filter": status,
            "records_received": received,
            "records_dropped": dropped,
            "duration_ms": duration_ms,
        },
    )

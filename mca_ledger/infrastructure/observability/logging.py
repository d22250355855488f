"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "mca-ledger"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = SERVICE_NAME


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_batch_processed(
    loan_count: int,
    processing_errors: int,
    skipped_rows: int,
    reference_date: str,
    duration_ms: float,
    request_id: Optional[str] = None,
) -> None:
    """Log structured batch outcome for analysis"""
    logging.getLogger("mca_ledger.batch").info(
        "Batch processed",
        extra={
            "request_id": request_id,
            "step": "batch_complete",
            "loan_count": loan_count,
            "processing_errors": processing_errors,
            "skipped_rows": skipped_rows,
            "reference_date": reference_date,
            "duration_ms": duration_ms,
        },
    )


def log_data_quality_issue(message: str, loan_number: Optional[str] = None) -> None:
    """Log a cell or row that was defaulted, dropped or skipped"""
    logging.getLogger("mca_ledger.data_quality").warning(
        message,
        extra={
            "step": "data_quality",
            "loan_number": loan_number,
        },
    )

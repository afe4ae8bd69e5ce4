"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from cashwise_engine.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping UTC time, level and the configured service name"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name
        log_record["timezone"] = settings.timezone


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


def log_rebuild(
    status: str,
    scheduled: int,
    skipped_duplicates: int,
    duration_ms: float,
) -> None:
    """Log structured rebuild outcome"""
    logging.getLogger("cashwise_engine.reminders").info(
        "Reminder rebuild completed",
        extra={
            "step": "rebuild_complete",
            "rebuild_status": status,
            "scheduled": scheduled,
            "skipped_duplicates": skipped_duplicates,
            "duration_ms": duration_ms,
        },
    )

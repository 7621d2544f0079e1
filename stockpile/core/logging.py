# stockpile/core/logging.py
import logging
import sys
from datetime import datetime, timezone
from typing import Dict, Any
from pythonjsonlogger.json import JsonFormatter

from stockpile.core.config import settings

CONTEXT_FIELDS = ("organization_id", "user_id", "request_id")


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter for structured logging"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        if record.name:
            log_record["logger"] = record.name

        log_record["level"] = record.levelname

        # Add request context if available
        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_record[field] = getattr(record, field)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure structured JSON logging"""
    logger = logging.getLogger("stockpile")
    logger.setLevel(level)
    logger.propagate = False

    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(message)s"
        )
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def request_context(request) -> Dict[str, Any]:
    """Logging ``extra`` for the caller and request id of ``request``."""
    context = {"request_id": getattr(request.state, "request_id", None)}
    for field in ("user_id", "organization_id"):
        value = getattr(request.state, field, None)
        if value is not None:
            context[field] = value
    return context


def redact(body: Any) -> Any:
    """Copy of a request body safe to log."""
    if isinstance(body, list):
        return [redact(item) for item in body]
    if isinstance(body, dict):
        return {
            key: ("[redacted]" if key == "password" else redact(value))
            for key, value in body.items()
        }
    return body


# Initialize logger
logger = setup_logging(settings.LOG_LEVEL)

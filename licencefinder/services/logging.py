"""
Structured logging for the licence finder.
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Dict, Any, Optional
import os

# Log level from environment
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Configure package logger; module loggers are its children
logger = logging.getLogger("licencefinder")
logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

# Remove existing handlers
logger.handlers.clear()

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


# Use JSON formatter in production, simple formatter in development
USE_JSON_LOGS = os.getenv("USE_JSON_LOGS", "false").lower() == "true"

if USE_JSON_LOGS:
    formatter = JSONFormatter()
else:
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

console_handler.setFormatter(formatter)
logger.addHandler(console_handler)

# Prevent propagation to root logger
logger.propagate = False


def log_reconciliation_run(
    total_licences: int,
    matched: int,
    no_match: int,
    no_folder: int,
    duration_ms: float,
    requester: Optional[str] = None,
    **kwargs
):
    """Log a completed reconciliation run."""
    extra_fields = {
        "type": "reconciliation_run",
        "total_licences": total_licences,
        "matched": matched,
        "no_match": no_match,
        "no_folder": no_folder,
        "duration_ms": duration_ms,
    }
    if requester:
        extra_fields["requester"] = requester
    extra_fields.update(kwargs)

    record = logging.LogRecord(
        name=logger.name,
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg=f"Reconciled {total_licences} licences: {matched} matched, {no_match} no match, {no_folder} no folder",
        args=(),
        exc_info=None,
    )
    record.extra_fields = extra_fields
    logger.handle(record)


def log_error(
    error_type: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
    exception: Optional[Exception] = None
):
    """Log error with context."""
    extra_fields = {
        "type": "error",
        "error_type": error_type,
    }
    if context:
        extra_fields.update(context)

    if exception:
        logger.error(
            message,
            exc_info=(type(exception), exception, exception.__traceback__),
            extra={"extra_fields": extra_fields},
        )
    else:
        record = logging.LogRecord(
            name=logger.name,
            level=logging.ERROR,
            pathname="",
            lineno=0,
            msg=message,
            args=(),
            exc_info=None,
        )
        record.extra_fields = extra_fields
        logger.handle(record)

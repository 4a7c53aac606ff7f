"""
Structured Logging Configuration

JSON log lines on stdout. Each line carries the request's correlation id and,
while a webhook is being processed, the Stripe event it belongs to.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

ROOT_LOGGER_NAME = "stripe_sevdesk"

correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)
stripe_event_var: ContextVar[Optional[Dict[str, str]]] = ContextVar(
    "stripe_event", default=None
)


class RequestContextFilter(logging.Filter):
    """Copy correlation id and current Stripe event onto the record"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "N/A"
        event = stripe_event_var.get()
        if event:
            record.stripe_event_id = event["id"]
            record.stripe_event_type = event["type"]
        return True


class ConnectorJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with UTC ISO-8601 timestamps"""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return created.isoformat(timespec="milliseconds")

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["location"] = f"{record.module}.{record.funcName}:{record.lineno}"
        log_record["correlation_id"] = getattr(record, "correlation_id", "N/A")

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """
    Configure the application logger hierarchy.

    Calling it again replaces the handler, so the level can be changed once
    settings are loaded.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(ConnectorJsonFormatter("%(level)s %(name)s %(message)s"))
    handler.addFilter(RequestContextFilter())
    logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger below the application root; module names are prefixed once"""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Set correlation ID for the current context.
    Generates a new UUID if not provided.

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_var.set(correlation_id)
    return correlation_id


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


def bind_stripe_event(event_id: str, event_type: str) -> None:
    """Tag every following log line in this context with the Stripe event"""
    stripe_event_var.set({"id": event_id, "type": event_type})


default_logger = setup_logging()

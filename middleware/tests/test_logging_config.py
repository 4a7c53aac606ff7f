"""
Test Structured Logging
"""

import json
import logging
from datetime import datetime

import pytest

from stripe_sevdesk.utils.logging_config import (
    ConnectorJsonFormatter,
    RequestContextFilter,
    bind_stripe_event,
    correlation_id_var,
    get_logger,
    set_correlation_id,
    stripe_event_var,
)


@pytest.fixture(autouse=True)
def reset_context():
    correlation_token = correlation_id_var.set(None)
    event_token = stripe_event_var.set(None)
    yield
    correlation_id_var.reset(correlation_token)
    stripe_event_var.reset(event_token)


def render(message: str = "Invoice created in SevDesk", **extra) -> dict:
    record = logging.LogRecord(
        name="stripe_sevdesk.handlers.invoice_handler",
        level=logging.INFO,
        pathname=__file__,
        lineno=42,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    RequestContextFilter().filter(record)
    return json.loads(ConnectorJsonFormatter("%(level)s %(name)s %(message)s").format(record))


def test_timestamp_is_utc_iso8601():
    line = render()

    assert "%" not in line["timestamp"]
    parsed = datetime.fromisoformat(line["timestamp"])
    assert parsed.utcoffset().total_seconds() == 0


def test_standard_fields():
    line = render(sevdesk_id="9001")

    assert line["level"] == "INFO"
    assert line["logger"] == "stripe_sevdesk.handlers.invoice_handler"
    assert line["message"] == "Invoice created in SevDesk"
    assert line["sevdesk_id"] == "9001"
    assert line["correlation_id"] == "N/A"


def test_correlation_id_and_stripe_event_are_attached():
    set_correlation_id("corr-42")
    bind_stripe_event("evt_123", "invoice.paid")

    line = render()

    assert line["correlation_id"] == "corr-42"
    assert line["stripe_event_id"] == "evt_123"
    assert line["stripe_event_type"] == "invoice.paid"


def test_generated_correlation_id():
    correlation_id = set_correlation_id()

    assert len(correlation_id) == 36
    assert render()["correlation_id"] == correlation_id


def test_get_logger_prefixes_once():
    assert get_logger("handlers.x").name == "stripe_sevdesk.handlers.x"
    assert get_logger("stripe_sevdesk.routes.webhook").name == "stripe_sevdesk.routes.webhook"

"""
Test Logging Module
===================

Unit tests for structured event lines.
"""

import json
import logging
import re
from pathlib import Path

# Add parent directory to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.logging import ColoredFormatter, EventFormatter, JSONFormatter, get_event_logger, utc_timestamp


def make_record(event, **fields):
    record = logging.LogRecord("bar_relay.events", logging.INFO, __file__, 1, event, None, None)
    record.event_fields = fields
    return record


def test_utc_timestamp_format():
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_timestamp())


def test_event_line_shape():
    """One JSON object with ts, event and the payload fields."""
    line = EventFormatter().format(make_record("order_received", ip="10.0.0.7", guest="Ada", drink="Martini"))

    data = json.loads(line)
    assert data["event"] == "order_received"
    assert data["ip"] == "10.0.0.7"
    assert data["guest"] == "Ada"
    assert data["drink"] == "Martini"
    assert data["ts"].endswith("Z")
    assert "\n" not in line


def test_event_line_keeps_unicode():
    line = EventFormatter().format(make_record("order_received", guest="Zoë"))
    assert "Zoë" in line


def test_event_logger_does_not_propagate():
    logger = get_event_logger()
    assert logger.propagate is False
    assert any(isinstance(h.formatter, EventFormatter) for h in logger.handlers)


def test_json_formatter_nests_extras():
    record = logging.makeLogRecord({
        "name": "bar_relay.services.forwarder",
        "levelname": "WARNING",
        "msg": "Agent hook answered 502",
        "body": "gateway down",
    })

    data = json.loads(JSONFormatter().format(record))
    assert data["message"] == "Agent hook answered 502"
    assert data["data"] == {"body": "gateway down"}


def test_colored_formatter_appends_extras():
    record = logging.makeLogRecord({"name": "bar_relay.rate_limiter", "msg": "limited", "count": 31})

    line = ColoredFormatter(use_color=False).format(record)
    assert line.endswith("rate_limiter: limited | count=31")

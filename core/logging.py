"""
Logging Module - Centralized logging configuration
=================================================

This module provides logging setup and utilities including:
- Structured JSON event lines on standard output
- Colored console diagnostics
- Optional file handlers
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any
import json


ROOT_LOGGER_NAME = "bar_relay"
EVENT_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.events"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2026-10-19T20:15:02.123Z."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


# Attributes every LogRecord has; anything else arrived through ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "event_fields"}


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the values passed to a logging call through ``extra=``."""
    return {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}


class JSONFormatter(logging.Formatter):
    """
    Diagnostic records as JSON objects, for the optional log file.

    Values passed with ``extra=`` are nested under ``data``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "ts": utc_timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }

        extras = record_extras(record)
        if extras:
            log_data["data"] = extras

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class EventFormatter(logging.Formatter):
    """
    One JSON object per line: ``{"ts": ..., "event": ..., <fields>}``.

    The record message is the event name; fields come from the
    ``event_fields`` attribute set by :func:`log_event`.
    """

    def format(self, record: logging.LogRecord) -> str:
        data = {"ts": utc_timestamp(), "event": record.getMessage()}
        data.update(getattr(record, "event_fields", {}))
        return json.dumps(data, default=str, ensure_ascii=False)


class ColoredFormatter(logging.Formatter):
    """
    Console diagnostics for an operator watching the relay.

    Colour is applied only when the stream is a terminal. ``extra=`` values
    are appended as ``key=value`` pairs.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"[{record.levelname}]"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        short_name = record.name[len(ROOT_LOGGER_NAME) + 1:] or record.name
        line = f"{level} {datetime.now():%H:%M:%S} {short_name}: {record.getMessage()}"

        extras = record_extras(record)
        if extras:
            line += " | " + " ".join(f"{k}={v}" for k, v in extras.items())

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        return line


class LoggerAdapter(logging.LoggerAdapter):
    """
    Adapter carrying fixed context for one component.

    Context given to :func:`get_logger` is merged into each call's
    ``extra``; keys passed on the call win.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


_configured = False


def setup_logging(
    log_dir: Optional[str] = None,
    log_level: str = "INFO",
    json_format: bool = False,
    console_output: bool = True
) -> None:
    """
    Configure the ``bar_relay`` logger tree. Later calls are no-ops.

    Diagnostics go to standard error so that standard output only carries
    event lines (see :func:`log_event`).

    Args:
        log_dir: Directory for ``bar-order-relay.log`` (optional)
        log_level: Minimum level for diagnostics
        json_format: Write the log file as JSON objects
        console_output: Log to standard error
    """
    global _configured

    if _configured:
        return

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(ColoredFormatter(use_color=sys.stderr.isatty()))
        root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path / "bar-order-relay.log", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter() if json_format else ColoredFormatter(use_color=False))
        root_logger.addHandler(file_handler)

    _configured = True


def get_logger(name: str, **context) -> LoggerAdapter:
    """
    Get a component logger under the ``bar_relay`` tree.

    Example:
        logger = get_logger("services.relay")
        logger.warning("Agent hook answered 502", extra={"body": text[:200]})
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return LoggerAdapter(logging.getLogger(name), context)


def get_event_logger() -> logging.Logger:
    """
    Return the structured event logger, attaching its stdout handler once.

    The event logger does not propagate, so event lines never pass through
    the colored console handler.
    """
    logger = logging.getLogger(EVENT_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(EventFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def log_event(event: str, **fields) -> None:
    """
    Write one structured event line to standard output.

    Args:
        event: Event name, e.g. ``order_received``
        **fields: Payload fields (``ip``, ``url``, ``guest``, ...)

    Example:
        log_event("unauthorized", ip="10.0.0.7", url="/bar-orders")
    """
    get_event_logger().info(event, extra={"event_fields": fields})

"""
Structured logging for Sequestre.

Every line carries the service name and, inside an API request, the
request ID. Ledger context (network, escrow_id, tx_hash, ...) is passed as
``extra`` and lands at the top level of the JSON object.
"""

import json
import logging
import sys
import time
from contextvars import ContextVar
from typing import Any, Optional
from uuid import uuid4

SERVICE_NAME = "sequestre"

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Chatty third-party loggers kept at WARNING
QUIET_LOGGERS = ("urllib3", "asyncio", "web3", "aiosqlite", "sqlalchemy.engine")

_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` fields never shadow core keys."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_ctx.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in _extra_fields(record).items():
            log_data.setdefault(key, value)

        log_data["location"] = f"{record.pathname}:{record.lineno}"
        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines for local development, extras appended as k=v."""

    def __init__(self):
        super().__init__(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extra_fields(record)
        if extras:
            line += " | " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def setup_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: JSON lines (True) or console format (False)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        JSONFormatter(datefmt="%Y-%m-%dT%H:%M:%S") if json_logs else ConsoleFormatter()
    )
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Bind a request ID to the current context.

    Args:
        request_id: Caller-supplied ID (a UUID is generated if None)

    Returns:
        Request ID that was bound
    """
    if request_id is None:
        request_id = str(uuid4())
    request_id_ctx.set(request_id)
    return request_id


def log_duration(
    logger: logging.Logger, operation: str, start_time: float, **fields: Any
) -> None:
    """Log how long ``operation`` took since ``start_time`` (perf_counter)."""
    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"{operation} took {duration_ms:.1f} ms",
        extra={"operation": operation, "duration_ms": round(duration_ms, 2), **fields},
    )

"""
Unit tests for structured logging.

Usage:
    pytest tests/unit/infrastructure/test_logger.py
"""

import json
import logging
import time
from unittest.mock import MagicMock

from sequestre.infrastructure.monitoring.logger import (
    ConsoleFormatter,
    JSONFormatter,
    log_duration,
    request_id_ctx,
    set_request_id,
)


def _record(message: str = "Escrow 7 created", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "sequestre.test", logging.INFO, "/app/ledger.py", 42, message, None, None
    )
    record.__dict__.update(extra)
    return record


class TestJSONFormatter:
    """Unit tests for JSONFormatter."""

    def test_core_fields_and_extras(self):
        """Test ledger context passed as extra lands at the top level."""
        line = JSONFormatter().format(
            _record(network="ethereum", escrow_id="7", tx_hash="0xab")
        )
        data = json.loads(line)

        assert data["service"] == "sequestre"
        assert data["level"] == "INFO"
        assert data["message"] == "Escrow 7 created"
        assert data["network"] == "ethereum"
        assert data["escrow_id"] == "7"
        assert data["tx_hash"] == "0xab"
        assert data["location"] == "/app/ledger.py:42"

    def test_extra_never_shadows_core_fields(self):
        data = json.loads(JSONFormatter().format(_record(service="other")))

        assert data["service"] == "sequestre"

    def test_request_id_included(self):
        """Test the bound request ID is attached to every line."""
        token = request_id_ctx.set("req-1")
        try:
            data = json.loads(JSONFormatter().format(_record()))
        finally:
            request_id_ctx.reset(token)

        assert data["request_id"] == "req-1"

    def test_non_json_values_stringified(self):
        data = json.loads(JSONFormatter().format(_record(amount=object)))

        assert isinstance(data["amount"], str)


class TestConsoleFormatter:
    """Unit tests for ConsoleFormatter."""

    def test_extras_appended(self):
        line = ConsoleFormatter().format(_record(network="polygon"))

        assert "Escrow 7 created" in line
        assert line.endswith("| network=polygon")


class TestLoggingHelpers:
    """Unit tests for request ID binding and duration logging."""

    def test_set_request_id_generates_uuid(self):
        token = request_id_ctx.set(None)
        try:
            request_id = set_request_id()
            assert request_id_ctx.get() == request_id
            assert len(request_id) == 36
        finally:
            request_id_ctx.reset(token)

    def test_log_duration(self):
        """Test durations are logged with the operation and extra fields."""
        logger = MagicMock()

        log_duration(logger, "mirror_sync_pass", time.perf_counter(), escrows=3)

        extra = logger.info.call_args.kwargs["extra"]
        assert extra["operation"] == "mirror_sync_pass"
        assert extra["escrows"] == 3
        assert extra["duration_ms"] >= 0

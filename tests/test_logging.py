"""Smoke tests for structured logging output shape.

Diagnostics are also written to the ``holdfast.diagnostics`` logger as JSON
lines; these tests pin down the fields that log shippers rely on.
"""

import json
import logging

import pytest

from holdfast.core.diagnostics import DiagnosticsBus
from holdfast.core.logging import JSONFormatter, get_logger
from holdfast.core.settings import Settings


class LogCapture(logging.Handler):
    """Custom handler to capture log records for testing."""

    def __init__(self):
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def log_capture():
    """Fixture to capture logs from the holdfast.diagnostics logger."""
    logger = logging.getLogger("holdfast.diagnostics")
    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    original_handlers = logger.handlers.copy()
    original_level = logger.level

    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield handler

    logger.removeHandler(handler)
    logger.handlers = original_handlers
    logger.level = original_level


def test_formatter_emits_json_with_standard_fields():
    record = logging.LogRecord(
        name="holdfast.retry",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Retry %d failed",
        args=(2,),
        exc_info=None,
    )
    record.operation = "SetHashMap"
    record.attempt = 2
    record.custom = {"nested": True}

    data = json.loads(JSONFormatter().format(record))

    assert data["level"] == "WARNING"
    assert data["message"] == "Retry 2 failed"
    assert data["logger"] == "holdfast.retry"
    assert data["operation"] == "SetHashMap"
    assert data["attempt"] == 2
    assert data["custom"] == {"nested": True}
    assert data["timestamp"].endswith("+00:00")


def test_formatter_falls_back_for_unserializable_extras():
    record = logging.LogRecord(
        name="holdfast", level=logging.INFO, pathname=__file__, lineno=1,
        msg="hello", args=(), exc_info=None,
    )
    record.payload = object()

    data = json.loads(JSONFormatter().format(record))

    assert data["payload"].startswith("<object object")


def test_get_logger_does_not_stack_handlers():
    first = get_logger("holdfast.test_stack")
    second = get_logger("holdfast.test_stack")

    assert first is second
    assert len(second.handlers) == 1
    assert second.propagate is False


def test_diagnostics_are_logged_with_category(log_capture):
    bus = DiagnosticsBus(Settings())

    bus.warning("QueueFull", container="jobs", length=5, limit=5)
    bus.error("RetryFailed", operation="Enqueue", attempts=3)

    levels = [(r.levelno, r.category) for r in log_capture.records]
    assert levels == [(logging.WARNING, "QueueFull"), (logging.ERROR, "RetryFailed")]
    assert log_capture.records[1].details == {"operation": "Enqueue", "attempts": 3}


def test_suppressed_diagnostics_are_not_logged(log_capture):
    bus = DiagnosticsBus(Settings(errors_enabled=False, warnings_enabled=False))

    bus.warning("QueueFull", container="jobs", length=5, limit=5)
    bus.error("RetryFailed", operation="Enqueue", attempts=3)

    assert log_capture.records == []

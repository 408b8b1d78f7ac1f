# ============================================================================
# STRUCTURED LOGGING TESTS
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Tests - Log context and formatters
# PURPOSE: Verify context propagation into JSON and human output
# CREATED: 19 OCT 2026
# ============================================================================
"""
Structured Logging Tests

Run with:
    pytest tests/test_logging.py -v
"""

import json
import logging

import pytest

from core.errors import DeliveryError, InvocationError
from core.logging import (
    ComponentType,
    HumanFormatter,
    StructuredFormatter,
    get_current_context,
    get_logger,
    log_context,
)
from fakes import StubInvoker


def _record(message="hello", **attrs):
    record = logging.LogRecord("worker.delivery", logging.INFO, __file__, 10, message, None, None)
    for name, value in attrs.items():
        setattr(record, name, value)
    return record


class _JsonLines(logging.Handler):
    """Formats at emit time, while the cycle's context is still pushed."""

    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.setFormatter(StructuredFormatter(include_source=False))
        self.lines = []

    def emit(self, record):
        self.lines.append(json.loads(self.format(record)))


@pytest.fixture
def json_lines():
    handler = _JsonLines()
    loggers = [logging.getLogger("worker"), logging.getLogger("infrastructure")]
    saved = [lg.level for lg in loggers]
    for lg in loggers:
        lg.addHandler(handler)
        lg.setLevel(logging.DEBUG)
    yield handler.lines
    for lg, level in zip(loggers, saved):
        lg.removeHandler(handler)
        lg.setLevel(level)


class TestLogContext:
    """Nested thread-local context."""

    def test_nested_context_merges(self):
        with log_context(worker_id="relay-1", function_name="fn1"):
            with log_context(message_id="m-1"):
                context = get_current_context()
                assert context.worker_id == "relay-1"
                assert context.function_name == "fn1"
                assert context.message_id == "m-1"
            assert get_current_context().message_id is None

        assert get_current_context().worker_id is None

    def test_unknown_fields_kept_as_extras(self):
        with log_context(queue_name="relay-events", attempt=2):
            assert get_current_context().to_dict() == {"queue_name": "relay-events", "attempt": 2}


class TestFormatters:
    """JSON and human output."""

    def test_structured_includes_context(self):
        with log_context(worker_id="relay-1", message_id="m-1"):
            output = json.loads(StructuredFormatter().format(_record()))

        assert output["message"] == "hello"
        assert output["level"] == "INFO"
        assert output["context"] == {"worker_id": "relay-1", "message_id": "m-1"}
        assert output["source"]["line"] == 10
        assert "component" not in output

    def test_structured_component_and_data(self):
        record = _record(component="invoker", data={"bytes": 42})

        output = json.loads(StructuredFormatter(include_source=False).format(record))

        assert output["component"] == "invoker"
        assert output["data"] == {"bytes": 42}
        assert "source" not in output

    def test_human_shows_context_inline(self):
        with log_context(worker_id="relay-1", queue_name="relay-events", function_name="fn1"):
            line = HumanFormatter().format(_record(component="worker"))

        assert "worker.delivery (worker) [worker=relay-1, queue=relay-events, fn=fn1]" in line
        assert line.endswith("hello")


class TestContextLogger:
    """get_logger() component tagging."""

    def test_component_and_caller_extra(self, json_lines):
        logger = get_logger("infrastructure.test", ComponentType.CHANNEL)

        logger.info("connected", extra={"queue": "relay-events"})

        assert json_lines[-1]["component"] == "channel"
        assert json_lines[-1]["data"] == {"queue": "relay-events"}


class TestCycleLogging:
    """Log lines emitted during a real delivery cycle."""

    def test_cycle_lines_carry_queue_and_component(self, channel, make_worker, json_lines):
        worker = make_worker(StubInvoker(error=InvocationError("throttled", retryable=True)))
        channel.put("event")

        with pytest.raises(DeliveryError):
            worker.process_once()

        by_component = {line["component"]: line for line in json_lines if "component" in line}
        assert {"channel", "worker"} <= set(by_component)

        for line in by_component.values():
            assert line["context"]["queue_name"] == "memory"
            assert line["context"]["worker_id"] == "test-worker"
            assert line["context"]["function_name"] == "fn1"

        failure = next(line for line in json_lines if line["level"] == "WARNING")
        assert failure["component"] == "worker"
        assert failure["context"]["queue_name"] == "memory"

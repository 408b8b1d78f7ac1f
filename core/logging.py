# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Core - Structured logging with context
# PURPOSE: Tag every relay log line with worker, queue, function and message
# CREATED: 19 OCT 2026
# ============================================================================
"""
Structured Logging

Every module logs through get_logger(name, component). A delivery cycle
pushes its identity onto a thread-local context, so channel and invoker
lines emitted inside the cycle carry the same tags as the worker's own:

    with log_context(worker_id="relay-1", queue_name="relay-events",
                     function_name="fn1"):
        with log_context(message_id="abc-123"):
            logger.info("Invoking")

JSON line (RELAY_LOG_FORMAT=json):

    {"timestamp": "...", "level": "INFO", "logger": "worker.delivery",
     "component": "worker", "message": "Invoking",
     "context": {"worker_id": "relay-1", "queue_name": "relay-events",
                 "function_name": "fn1", "message_id": "abc-123"}}

Human line (default):

    2026-10-19 12:00:00 INFO     worker.delivery (worker) [worker=relay-1,
    queue=relay-events, fn=fn1, msg=abc-123]: Invoking
"""

import json
import logging
import os
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Union


class ComponentType(str, Enum):
    """Which part of the relay emitted a log line."""
    WORKER = "worker"
    CHANNEL = "channel"
    INVOKER = "invoker"


# Context field -> short label used by HumanFormatter
CONTEXT_FIELDS = {
    "worker_id": "worker",
    "queue_name": "queue",
    "function_name": "fn",
    "message_id": "msg",
}

# Noisy SDK loggers held at WARNING or above
SDK_LOGGERS = ("azure", "uamqp", "botocore", "boto3", "urllib3")


@dataclass(frozen=True)
class LogContext:
    """Identity of the delivery cycle currently running on this thread."""
    worker_id: Optional[str] = None
    queue_name: Optional[str] = None
    function_name: Optional[str] = None
    message_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def merged(self, **fields: Any) -> "LogContext":
        """New context with the given fields layered on top of this one."""
        known = {k: v for k, v in fields.items() if k in CONTEXT_FIELDS}
        unknown = {k: v for k, v in fields.items() if k not in CONTEXT_FIELDS}
        return replace(self, extra={**self.extra, **unknown}, **known)

    def to_dict(self) -> Dict[str, Any]:
        """Set fields only, extras last."""
        result = {
            name: getattr(self, name)
            for name in CONTEXT_FIELDS
            if getattr(self, name) is not None
        }
        result.update(self.extra)
        return result


_EMPTY_CONTEXT = LogContext()
_local = threading.local()


def _stack() -> list:
    if not hasattr(_local, "stack"):
        _local.stack = []
    return _local.stack


def get_current_context() -> LogContext:
    """Innermost context on this thread, or an empty one."""
    stack = _stack()
    return stack[-1] if stack else _EMPTY_CONTEXT


@contextmanager
def log_context(**fields: Any) -> Iterator[LogContext]:
    """
    Layer fields onto the current thread's log context.

    Names outside CONTEXT_FIELDS are kept as extras.
    """
    stack = _stack()
    context = get_current_context().merged(**fields)
    stack.append(context)
    try:
        yield context
    finally:
        stack.pop()


# ============================================================================
# FORMATTERS
# ============================================================================

def _record_data(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "data", None) or {}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line for log aggregation."""

    def __init__(self, include_source: bool = True):
        super().__init__()
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
        }
        component = getattr(record, "component", None)
        if component:
            entry["component"] = component
        entry["message"] = record.getMessage()

        context = get_current_context().to_dict()
        if context:
            entry["context"] = context
        data = _record_data(record)
        if data:
            entry["data"] = data
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if self.include_source:
            entry["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """Single readable line with context tags inline."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        component = getattr(record, "component", None)
        origin = f"{record.name} ({component})" if component else record.name

        context = get_current_context()
        tags = [
            f"{label}={getattr(context, name)}"
            for name, label in CONTEXT_FIELDS.items()
            if getattr(context, name) is not None
        ]
        tag_str = f" [{', '.join(tags)}]" if tags else ""

        line = f"{timestamp} {record.levelname:<8} {origin}{tag_str}: {record.getMessage()}"
        data = _record_data(record)
        if data:
            line += f" {data}"
        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"
        return line


# ============================================================================
# LOGGERS
# ============================================================================

class ContextLogger(logging.LoggerAdapter):
    """
    Adapter that stamps records with the component.

    Caller ``extra`` is moved under ``record.data`` so it cannot collide
    with LogRecord attributes.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {
            "component": self.extra.get("component"),
            "data": dict(kwargs.get("extra") or {}),
        }
        return msg, kwargs


def get_logger(name: str, component: Optional[ComponentType] = None) -> ContextLogger:
    """Logger for a relay module, tagged with its component."""
    return ContextLogger(
        logging.getLogger(name),
        {"component": component.value if component else None},
    )


def configure_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = False,
    include_source: bool = True,
) -> None:
    """
    Install a single stdout handler on the root logger.

    JSON output is used when json_output is set or RELAY_LOG_FORMAT=json.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_output or os.getenv("RELAY_LOG_FORMAT", "").lower() == "json":
        formatter: logging.Formatter = StructuredFormatter(include_source=include_source)
    else:
        formatter = HumanFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in SDK_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


__all__ = [
    "ComponentType",
    "CONTEXT_FIELDS",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
]

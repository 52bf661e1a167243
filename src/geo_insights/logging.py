"""Structured logging configuration.

Uses standard library logging with a JSON formatter. Records emitted while a
workflow execution runs are tagged with its id and workflow name, so step and
provider logs can be correlated without threading ids through every call.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

_RESERVED_LOG_RECORD_ATTRS: set[str] = {
    "args",
    "asctime",
    "created",
    "exc_info",
    "exc_text",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "taskName",
    "thread",
    "threadName",
}

_execution: ContextVar[tuple[str, str] | None] = ContextVar("workflow_execution", default=None)


@contextmanager
def execution_context(execution_id: str, workflow: str) -> Iterator[None]:
    """Tag log records from the current thread with a workflow execution."""
    token = _execution.set((execution_id, workflow))
    try:
        yield
    finally:
        _execution.reset(token)


class ExecutionContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        current = _execution.get()
        if current is not None:
            execution_id, workflow = current
            # Explicit `extra=` values win.
            if not hasattr(record, "execution_id"):
                record.execution_id = execution_id
            if not hasattr(record, "workflow"):
                record.workflow = workflow
        return True


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_LOG_RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str) -> None:
    """Configure root logging with structured JSON output."""

    root = logging.getLogger()

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(ExecutionContextFilter())

    root.addHandler(handler)
    root.setLevel(level.upper())

    # HTTP client chatter is only interesting when debugging.
    for noisy in ("urllib3", "httpx", "openai"):
        logging.getLogger(noisy).setLevel(max(root.level, logging.WARNING))

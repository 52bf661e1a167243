"""Unit tests for structured JSON logging."""

from __future__ import annotations

import json
import logging

from geo_insights.logging import ExecutionContextFilter, JsonFormatter, execution_context


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord(
        name="geo_insights.engine",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Workflow execution failed",
        args=(),
        exc_info=None,
    )
    record.execution_id = "abc"
    record.step = "geolocate"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "geo_insights.engine"
    assert payload["message"] == "Workflow execution failed"
    assert payload["extra"] == {"execution_id": "abc", "step": "geolocate"}


def _record(msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="geo_insights.engine.executor",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_execution_context_tags_records_until_exit() -> None:
    context_filter = ExecutionContextFilter()

    with execution_context("abc", "location"):
        inside = _record("Workflow step failed")
        context_filter.filter(inside)
    outside = _record("Unrelated")
    context_filter.filter(outside)

    assert json.loads(JsonFormatter().format(inside))["extra"] == {
        "execution_id": "abc",
        "workflow": "location",
    }
    assert not hasattr(outside, "execution_id")


def test_explicit_extra_wins_over_execution_context() -> None:
    record = _record("Workflow execution failed")
    record.execution_id = "explicit"

    with execution_context("abc", "location"):
        ExecutionContextFilter().filter(record)

    assert record.execution_id == "explicit"
    assert record.workflow == "location"


def test_engine_step_logs_carry_execution_id(engine, failing_geolocation, caplog) -> None:
    caplog.handler.addFilter(ExecutionContextFilter())

    with caplog.at_level(logging.WARNING, logger="geo_insights.engine.executor"):
        execution = engine.start_location_workflow("8.8.8.8")

    [step_failure] = [r for r in caplog.records if r.getMessage() == "Workflow step failed"]
    assert step_failure.execution_id == execution.id
    assert step_failure.workflow == "location"

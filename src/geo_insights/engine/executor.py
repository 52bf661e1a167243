"""Run a single workflow step against its provider."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from geo_insights.engine.errors import StepFailure, StepTimeout
from geo_insights.engine.models import WorkflowStatus, WorkflowStep

logger = logging.getLogger(__name__)

StepAction = Callable[[Mapping[str, Any]], Any]


def to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, Mapping):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [to_jsonable(v) for v in value]
    return value


def serialize(value: Any) -> str:
    return json.dumps(to_jsonable(value), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class StepResult:
    """The recorded step plus the raw value its action returned."""

    step: WorkflowStep
    value: Any = None

    @property
    def succeeded(self) -> bool:
        return self.step.status == WorkflowStatus.COMPLETED


@dataclass(slots=True)
class _Invocation:
    started_at: float | None = None
    finished_at: float | None = None
    returned: bool = False
    value: Any = None
    error: Exception | None = None


class StepExecutor:
    """Invoke step actions, timing them and capturing failures as data.

    `run` never raises because of the action: exceptions and timeouts come
    back as a failed `WorkflowStep`. Retries are not attempted here.

    Each bounded invocation gets its own daemon thread, so the timeout and the
    recorded duration both start when the action starts, however many steps
    are running at once. A timed-out action is abandoned, not interrupted.

    With `timeout_seconds=None` the action runs inline on the calling thread.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float | None = 15.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    def run(self, name: str, payload: Mapping[str, Any], action: StepAction) -> StepResult:
        serialized_input = serialize(payload)
        invocation = _Invocation()
        try:
            value = self._invoke(name, payload, action, invocation)
        except StepFailure as failure:
            duration = self._duration_ms(invocation)
            logger.warning(
                "Workflow step failed",
                extra={"step": name, "error": failure.message, "duration_ms": duration},
            )
            return StepResult(
                step=WorkflowStep(
                    name=name,
                    status=WorkflowStatus.FAILED,
                    input=serialized_input,
                    error=failure.message,
                    duration=duration,
                )
            )

        duration = self._duration_ms(invocation)
        logger.debug("Workflow step completed", extra={"step": name, "duration_ms": duration})
        return StepResult(
            step=WorkflowStep(
                name=name,
                status=WorkflowStatus.COMPLETED,
                input=serialized_input,
                output=serialize(value),
                duration=duration,
            ),
            value=value,
        )

    def _invoke(
        self,
        name: str,
        payload: Mapping[str, Any],
        action: StepAction,
        invocation: _Invocation,
    ) -> Any:
        timeout = self._timeout_seconds
        if timeout is None:
            self._call(action, payload, invocation)
        else:
            running = threading.Event()
            finished = threading.Event()

            def target() -> None:
                running.set()
                try:
                    self._call(action, payload, invocation)
                finally:
                    finished.set()

            threading.Thread(target=target, name=f"workflow-step-{name}", daemon=True).start()
            running.wait()
            if not finished.wait(timeout):
                raise StepTimeout(name, timeout)

        if invocation.error is not None:
            e = invocation.error
            raise StepFailure(name, str(e) or type(e).__name__) from e
        if not invocation.returned:
            raise StepFailure(name, "step aborted")
        return invocation.value

    def _call(
        self, action: StepAction, payload: Mapping[str, Any], invocation: _Invocation
    ) -> None:
        invocation.started_at = self._clock()
        try:
            invocation.value = action(payload)
            invocation.returned = True
        except Exception as e:
            invocation.error = e
        finally:
            invocation.finished_at = self._clock()

    def _duration_ms(self, invocation: _Invocation) -> int:
        if invocation.started_at is None:
            return 0
        # A timed-out action is still running; measure up to now.
        finished_at = invocation.finished_at
        if finished_at is None:
            finished_at = self._clock()
        return max(0, int(round((finished_at - invocation.started_at) * 1000)))

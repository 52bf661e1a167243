"""Error taxonomy for the workflow engine.

Only structural misuse (`InvalidInput`, `NotFound`) and store failures
(`StoreUnavailable`) are raised to callers. `StepFailure` and `StepTimeout`
describe why a step failed; the executor records them on the step instead of
raising them.
"""

from __future__ import annotations


class WorkflowError(Exception):
    pass


class InvalidInput(WorkflowError, ValueError):
    """Workflow arguments are insufficient to start a run."""


class NotFound(WorkflowError, KeyError):
    def __init__(self, execution_id: str) -> None:
        super().__init__(execution_id)
        self.execution_id = execution_id

    def __str__(self) -> str:
        return f"Workflow execution not found: {self.execution_id}"


class StoreUnavailable(WorkflowError, RuntimeError):
    """The execution store could not be read or written."""


class StepFailure(WorkflowError):
    def __init__(self, step_name: str, message: str) -> None:
        super().__init__(message)
        self.step_name = step_name
        self.message = message

    def __str__(self) -> str:
        return self.message


class StepTimeout(StepFailure):
    def __init__(self, step_name: str, timeout_seconds: float) -> None:
        super().__init__(
            step_name, f"Timeout: step '{step_name}' exceeded {timeout_seconds:g}s"
        )
        self.timeout_seconds = timeout_seconds

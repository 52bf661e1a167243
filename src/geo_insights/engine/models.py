"""Execution records tracked by the workflow engine."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class WorkflowStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowStatus.COMPLETED, WorkflowStatus.FAILED)


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class WorkflowStep(BaseModel):
    """One named unit of work within an execution.

    `input` and `output` are JSON-serialized payloads. `duration` is in
    milliseconds.
    """

    name: str
    status: WorkflowStatus
    input: str | None = None
    output: str | None = None
    error: str | None = None
    duration: int | None = None


class WorkflowExecution(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    workflow: str
    status: WorkflowStatus = WorkflowStatus.PENDING
    steps: list[WorkflowStep] = Field(default_factory=list)

    result: str | None = None
    error: str | None = None

    started_at: datetime = Field(default_factory=utc_now, alias="startedAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def step(self, name: str) -> WorkflowStep | None:
        for step in self.steps:
            if step.name == name:
                return step
        return None

"""Workflow execution engine.

The engine is the only writer of `WorkflowExecution` records. Every state
change goes through a single `ExecutionStore.update` call, so concurrent
readers always see a valid point in the pending -> running -> terminal
sequence, with steps appended in the order they ran.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Mapping
from typing import Any

from geo_insights.engine.definitions import (
    ExecutionContext,
    StepKind,
    WorkflowDefinition,
    bind_actions,
    location_analysis_workflow,
    location_workflow,
)
from geo_insights.engine.executor import StepAction, StepExecutor, serialize
from geo_insights.engine.models import WorkflowExecution, WorkflowStatus, WorkflowStep, utc_now
from geo_insights.engine.state_machine import transition
from geo_insights.engine.store import ExecutionStore
from geo_insights.logging import execution_context
from geo_insights.providers.geolocation import GeolocationProvider
from geo_insights.providers.insights import InsightProvider

logger = logging.getLogger(__name__)


def _mark_running(record: WorkflowExecution) -> None:
    record.status = transition(current=record.status, to=WorkflowStatus.RUNNING)


def _append_step(step: WorkflowStep):
    def mutate(record: WorkflowExecution) -> None:
        record.steps.append(step)

    return mutate


def _finalize(
    status: WorkflowStatus,
    *,
    step: WorkflowStep | None = None,
    result: str | None = None,
    error: str | None = None,
):
    def mutate(record: WorkflowExecution) -> None:
        record.status = transition(current=record.status, to=status)
        if step is not None:
            record.steps.append(step)
        record.result = result
        record.error = error
        record.completed_at = utc_now()

    return mutate


class WorkflowEngine:
    """Run workflow definitions and answer lookups by execution id.

    Collaborators are passed in and held for the engine's lifetime. A running
    execution cannot be cancelled; it always reaches a terminal status unless
    the process exits.
    """

    def __init__(
        self,
        *,
        store: ExecutionStore,
        geolocation: GeolocationProvider,
        insights: InsightProvider,
        executor: StepExecutor | None = None,
    ) -> None:
        self._store = store
        self._executor = executor or StepExecutor()
        self._actions: dict[StepKind, StepAction] = bind_actions(
            geolocation=geolocation, insights=insights
        )

    @property
    def store(self) -> ExecutionStore:
        return self._store

    def execute(self, definition: WorkflowDefinition, initial_input: Mapping[str, Any]) -> str:
        """Create an execution and run it to a terminal status before returning its id.

        Raises:
            InvalidInput: The input cannot start this workflow; no record is created.
            StoreUnavailable: The record could not be created or updated.
        """
        execution_id, context = self._create(definition, initial_input)
        self._run(execution_id, definition, context)
        return execution_id

    def start(self, definition: WorkflowDefinition, initial_input: Mapping[str, Any]) -> str:
        """Create an execution and run its steps on a background thread.

        Returns as soon as the `pending` record exists. Progress is observable
        through `get_execution` or an `UpdateWatcher`.
        """
        execution_id, context = self._create(definition, initial_input)
        thread = threading.Thread(
            target=self._run_in_background,
            name=f"workflow-{definition.name}-{execution_id}",
            daemon=True,
            args=(execution_id, definition, context),
        )
        thread.start()
        return execution_id

    def get_execution(self, execution_id: str) -> WorkflowExecution:
        """Return a snapshot of the execution, or raise `NotFound`."""
        return self._store.get(execution_id)

    def list_executions(self, limit: int | None = None) -> list[WorkflowExecution]:
        return self._store.list(limit)

    def start_location_workflow(self, ip: str, *, background: bool = False) -> WorkflowExecution:
        run = self.start if background else self.execute
        execution_id = run(location_workflow(), {"ip": ip})
        return self.get_execution(execution_id)

    def start_location_analysis_workflow(
        self,
        *,
        ip: str | None = None,
        city: str | None = None,
        country: str | None = None,
        purpose: str | None = None,
        background: bool = False,
    ) -> WorkflowExecution:
        run = self.start if background else self.execute
        execution_id = run(
            location_analysis_workflow(),
            {"ip": ip, "city": city, "country": country, "purpose": purpose},
        )
        return self.get_execution(execution_id)

    def _create(
        self, definition: WorkflowDefinition, initial_input: Mapping[str, Any]
    ) -> tuple[str, ExecutionContext]:
        normalized = definition.validate(initial_input)
        execution = WorkflowExecution(id=uuid.uuid4().hex, workflow=definition.name)
        self._store.create(execution)
        logger.info(
            "Workflow execution created",
            extra={"execution_id": execution.id, "workflow": definition.name},
        )
        return execution.id, ExecutionContext(input=normalized)

    def _run(
        self, execution_id: str, definition: WorkflowDefinition, context: ExecutionContext
    ) -> None:
        with execution_context(execution_id, definition.name):
            self._run_steps(execution_id, definition, context)

    def _run_steps(
        self, execution_id: str, definition: WorkflowDefinition, context: ExecutionContext
    ) -> None:
        self._store.update(execution_id, _mark_running)

        for spec in definition.steps:
            if not spec.applies(context):
                logger.debug(
                    "Skipping workflow step",
                    extra={"execution_id": execution_id, "step": spec.name},
                )
                continue

            try:
                payload = spec.build_input(context)
            except Exception as e:
                logger.exception(
                    "Could not build step input",
                    extra={"execution_id": execution_id, "step": spec.name},
                )
                failed = WorkflowStep(
                    name=spec.name, status=WorkflowStatus.FAILED, error=str(e), duration=0
                )
                self._fail(execution_id, definition, failed)
                return

            outcome = self._executor.run(spec.name, payload, self._actions[spec.kind])
            if not outcome.succeeded:
                self._fail(execution_id, definition, outcome.step)
                return

            self._store.update(execution_id, _append_step(outcome.step))
            context.outputs[spec.name] = outcome.value

        result = serialize(definition.build_result(context))
        self._store.update(execution_id, _finalize(WorkflowStatus.COMPLETED, result=result))
        logger.info(
            "Workflow execution completed",
            extra={"execution_id": execution_id, "workflow": definition.name},
        )

    def _fail(self, execution_id: str, definition: WorkflowDefinition, step: WorkflowStep) -> None:
        # The failed step and the terminal status land in one update.
        self._store.update(
            execution_id, _finalize(WorkflowStatus.FAILED, step=step, error=step.error)
        )
        logger.warning(
            "Workflow execution failed",
            extra={
                "execution_id": execution_id,
                "workflow": definition.name,
                "step": step.name,
                "error": step.error,
            },
        )

    def _run_in_background(
        self, execution_id: str, definition: WorkflowDefinition, context: ExecutionContext
    ) -> None:
        try:
            self._run(execution_id, definition, context)
        except Exception:
            logger.exception(
                "Background workflow execution aborted",
                extra={"execution_id": execution_id, "workflow": definition.name},
            )

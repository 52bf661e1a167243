"""Workflow execution engine.

- `store`: pluggable execution record storage
- `executor`: runs one step, timing it and capturing failures
- `definitions`: the location and location-analysis workflows
- `engine`: orchestration and lookups
- `watcher`: polling subscriptions over an execution
"""

from geo_insights.engine.definitions import (
    StepKind,
    WorkflowDefinition,
    location_analysis_workflow,
    location_workflow,
)
from geo_insights.engine.engine import WorkflowEngine
from geo_insights.engine.errors import InvalidInput, NotFound, StoreUnavailable
from geo_insights.engine.executor import StepExecutor
from geo_insights.engine.models import WorkflowExecution, WorkflowStatus, WorkflowStep
from geo_insights.engine.store import (
    ExecutionStore,
    InMemoryExecutionStore,
    JsonFileExecutionStore,
)
from geo_insights.engine.watcher import CancellationToken, Subscription, UpdateWatcher

__all__ = [
    "CancellationToken",
    "ExecutionStore",
    "InMemoryExecutionStore",
    "InvalidInput",
    "JsonFileExecutionStore",
    "NotFound",
    "StepExecutor",
    "StepKind",
    "StoreUnavailable",
    "Subscription",
    "UpdateWatcher",
    "WorkflowDefinition",
    "WorkflowEngine",
    "WorkflowExecution",
    "WorkflowStatus",
    "WorkflowStep",
    "location_analysis_workflow",
    "location_workflow",
]
